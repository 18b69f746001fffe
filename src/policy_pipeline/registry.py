"""PolicyRegistry — the stage-to-policy table shared by every request.

The registry follows a two-phase lifecycle: policies are registered during
a single-threaded *load phase*, after which the table is only read while
requests are served.  Registering while requests are in flight is not
supported.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from policy_pipeline.apply_points import (
    APPLY_POINTS,
    ApplyPoint,
    apply_point_of,
    is_valid_apply_point,
)
from policy_pipeline.exceptions import DuplicatePolicyError, InvalidApplyPointError
from policy_pipeline.schema import PolicyEntrySchema, RegistrySnapshot

logger = structlog.get_logger()

PolicyFn = Callable[..., Any]
StageListener = Callable[[ApplyPoint], None]


class PolicyRegistry:
    """Holds registered policies keyed by name and by apply point.

    Names are unique across the whole registry, not per stage.  The first
    time a policy lands on a stage, ``on_stage_activated`` is called with
    that stage so the owner can install a dispatcher there; it is never
    called twice for the same stage until :meth:`reset`.

    Parameters:
        default_apply_point: Stage used when a policy declares none.
        on_stage_activated:  Callback invoked once per newly used stage.
    """

    def __init__(
        self,
        default_apply_point: ApplyPoint | str = ApplyPoint.ON_PRE_HANDLER,
        on_stage_activated: StageListener | None = None,
    ) -> None:
        if not is_valid_apply_point(default_apply_point):
            raise InvalidApplyPointError(default_apply_point, name="<default>")
        self._default = ApplyPoint(default_apply_point)
        self._on_stage_activated = on_stage_activated
        self._init_state()

    def _init_state(self) -> None:
        # name -> bound stage, None for reserved names
        self._names: dict[str, ApplyPoint | None] = {}
        self._by_apply_point: dict[ApplyPoint, dict[str, PolicyFn]] = {
            point: {} for point in APPLY_POINTS
        }
        self._installed: dict[ApplyPoint, bool] = {}

    # ── registration ─────────────────────────────────────────

    def register(
        self,
        name: str,
        fn: PolicyFn,
        apply_point: ApplyPoint | str | bool | None = None,
    ) -> ApplyPoint | None:
        """Register *fn* under *name* and return the stage it was bound to.

        The stage comes from *apply_point* when given, else from the
        function's ``apply_point`` attribute, else the default.  A falsy
        (but not ``None``) value reserves the name without binding a stage,
        in which case ``None`` is returned.

        Raises:
            ValueError: if *name* is empty or *fn* is not callable.
            DuplicatePolicyError: if *name* is already registered.
            InvalidApplyPointError: if the declared stage is not valid.
        """
        if not isinstance(name, str) or not name:
            raise ValueError(f"Policy name must be a non-empty string, got {name!r}")
        if not callable(fn):
            raise ValueError(f"Policy '{name}' is not callable")

        if name in self._names:
            logger.error("duplicate_policy", name=name)
            raise DuplicatePolicyError(name)

        declared = apply_point if apply_point is not None else apply_point_of(fn)
        if declared is None:
            stage: ApplyPoint | None = self._default
        elif not declared:
            stage = None
        elif is_valid_apply_point(declared):
            stage = ApplyPoint(declared)
        else:
            logger.error("invalid_apply_point", name=name, apply_point=declared)
            raise InvalidApplyPointError(declared, name=name)

        self._names[name] = stage
        if stage is None:
            logger.info("policy_reserved", name=name)
            return None

        self._by_apply_point[stage][name] = fn
        logger.info("policy_registered", name=name, apply_point=stage.value)

        if not self._installed.get(stage):
            if self._on_stage_activated is not None:
                self._on_stage_activated(stage)
            self._installed[stage] = True
            logger.debug("stage_dispatcher_installed", apply_point=stage.value)

        return stage

    def load(self, entries: Iterable[tuple[str, PolicyFn]]) -> list[str]:
        """Register ``(name, fn)`` pairs in order, stopping at the first failure.

        Entries registered before the failing one stay registered.

        Returns:
            The names registered by this call.
        """
        loaded: list[str] = []
        for name, fn in entries:
            self.register(name, fn)
            loaded.append(name)
        return loaded

    def reset(self) -> None:
        """Forget every policy and every installed-stage flag.

        Dispatchers already handed to a host are **not** removed from it;
        a caller wanting a clean restart must also rebuild the host's
        extension points.
        """
        self._init_state()
        logger.info("registry_reset")

    # ── lookup ───────────────────────────────────────────────

    @property
    def default_apply_point(self) -> ApplyPoint:
        return self._default

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def stage_of(self, name: str) -> ApplyPoint | None:
        """Return the stage *name* is bound to; ``None`` for reserved names.

        Raises:
            KeyError: if *name* is not registered.
        """
        return self._names[name]

    def get(self, apply_point: ApplyPoint | str, name: str) -> PolicyFn | None:
        """Return the policy stored under *name* at *apply_point*, if any."""
        return self._by_apply_point[ApplyPoint(apply_point)].get(name)

    def policies_at(self, apply_point: ApplyPoint | str) -> dict[str, PolicyFn]:
        """Return a copy of the name → policy table for one stage."""
        return dict(self._by_apply_point[ApplyPoint(apply_point)])

    def is_installed(self, apply_point: ApplyPoint | str) -> bool:
        return self._installed.get(ApplyPoint(apply_point), False)

    @property
    def installed_stages(self) -> list[ApplyPoint]:
        """Stages with an installed dispatcher, in lifecycle order."""
        return [p for p in APPLY_POINTS if self._installed.get(p)]

    # ── introspection ────────────────────────────────────────

    def export(self) -> RegistrySnapshot:
        """Return a JSON-serializable snapshot of the registry."""
        entries = []
        for name, stage in self._names.items():
            fn = self._by_apply_point[stage].get(name) if stage is not None else None
            doc = inspect.getdoc(fn) if fn is not None else None
            entries.append(
                PolicyEntrySchema(
                    name=name,
                    apply_point=stage,
                    description=doc.splitlines()[0] if doc else "",
                )
            )
        return RegistrySnapshot(
            default_apply_point=self._default,
            policies=entries,
            stages={p: list(self._by_apply_point[p]) for p in APPLY_POINTS},
            reserved=[n for n, s in self._names.items() if s is None],
            installed=self.installed_stages,
        )
