"""Per-request resolution of which policies run at the current stage."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from policy_pipeline.apply_points import ApplyPoint, apply_point_of, is_valid_apply_point
from policy_pipeline.directives import ByName, Inline, parse_directive
from policy_pipeline.exceptions import InvalidApplyPointError, MissingPolicyError

if TYPE_CHECKING:
    from policy_pipeline.registry import PolicyFn, PolicyRegistry


@dataclass(frozen=True)
class ResolvedPolicy:
    """A policy selected to run at one stage for one request."""

    name: str
    fn: PolicyFn
    inline: bool = False


def inline_apply_point(fn: Any, default_apply_point: ApplyPoint) -> ApplyPoint:
    """Return the stage an inline policy runs at.

    A missing or falsy ``apply_point`` attribute means the default stage.

    Raises:
        InvalidApplyPointError: if the attribute is set to an unknown stage.
    """
    declared = apply_point_of(fn)
    if not declared:
        return default_apply_point
    if not is_valid_apply_point(declared):
        raise InvalidApplyPointError(declared)
    return ApplyPoint(declared)


def resolve(
    apply_point: ApplyPoint | str,
    registry: PolicyRegistry,
    directives: Iterable[Any] | None,
    default_apply_point: ApplyPoint | str | None = None,
) -> list[ResolvedPolicy]:
    """Return the policies from *directives* that run at *apply_point*, in order.

    Named policies bound to another stage and inline policies aimed at
    another stage are skipped; they run when their own stage is reached.
    Resolution stops at the first bad directive, so either every directive
    is valid or nothing runs.

    Raises:
        MissingPolicyError: a name is not registered.
        InvalidApplyPointError: an inline policy declares an unknown stage.
        MalformedDirectiveError: a directive is neither a name nor a callable.
    """
    if not directives:
        return []

    stage = ApplyPoint(apply_point)
    default = ApplyPoint(default_apply_point or registry.default_apply_point)
    selected: list[ResolvedPolicy] = []

    for raw in directives:
        directive = parse_directive(raw)

        if isinstance(directive, ByName):
            if directive.name not in registry:
                raise MissingPolicyError(directive.name)
            fn = registry.get(stage, directive.name)
            if fn is not None:
                selected.append(ResolvedPolicy(directive.name, fn))

        elif isinstance(directive, Inline):
            if inline_apply_point(directive.fn, default) is stage:
                selected.append(ResolvedPolicy(directive.name, directive.fn, inline=True))

    return selected
