"""Route directives — a policy referenced by name or supplied inline."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from policy_pipeline.exceptions import MalformedDirectiveError


@dataclass(frozen=True)
class ByName:
    """Reference to a policy stored in the registry."""

    name: str


@dataclass(frozen=True)
class Inline:
    """Policy callable declared directly on the route."""

    fn: Callable[..., Any]

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", repr(self.fn))


Directive = ByName | Inline


def parse_directive(value: Any) -> Directive:
    """Turn a raw route entry into a :data:`Directive`.

    Raises:
        MalformedDirectiveError: if *value* is neither a string nor a callable.
    """
    if isinstance(value, (ByName, Inline)):
        return value
    if isinstance(value, str):
        return ByName(value)
    if callable(value):
        return Inline(value)
    raise MalformedDirectiveError(value)


def parse_directives(values: Iterable[Any]) -> list[Directive]:
    """Parse every entry in order; the first malformed entry raises."""
    return [parse_directive(v) for v in values]
