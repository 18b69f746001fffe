"""Apply points — the fixed, ordered lifecycle stages policies can bind to."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

#: Explicit "never runs" marker.  A stored policy carrying it reserves its
#: name without binding to any stage.
DISABLED = False


class ApplyPoint(StrEnum):
    """Lifecycle stages in the order a request reaches them."""

    ON_REQUEST = "onRequest"
    ON_PRE_AUTH = "onPreAuth"
    ON_POST_AUTH = "onPostAuth"
    ON_PRE_HANDLER = "onPreHandler"
    ON_POST_HANDLER = "onPostHandler"
    ON_PRE_RESPONSE = "onPreResponse"


APPLY_POINTS: tuple[ApplyPoint, ...] = tuple(ApplyPoint)

_APPLY_POINT_VALUES = frozenset(p.value for p in ApplyPoint)


def is_valid_apply_point(value: Any) -> bool:
    """Return ``True`` if *value* names one of the six stages."""
    return isinstance(value, str) and value in _APPLY_POINT_VALUES


def apply_point_of(fn: Any) -> Any:
    """Return the raw ``apply_point`` attribute of *fn*, or ``None`` if absent."""
    return getattr(fn, "apply_point", None)


def apply_at(point: ApplyPoint | str | bool) -> Callable[[F], F]:
    """Decorator that annotates a policy function with its apply point.

    Pass :data:`DISABLED` to reserve the name without binding a stage.
    The value is validated when the policy is registered or resolved, not here.
    """

    def decorator(fn: F) -> F:
        fn.apply_point = point  # type: ignore[attr-defined]
        return fn

    return decorator
