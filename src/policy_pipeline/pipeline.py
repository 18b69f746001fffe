"""PolicyPipeline — the central orchestrator."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from policy_pipeline.apply_points import ApplyPoint
from policy_pipeline.config import PipelineOptions
from policy_pipeline.context import Route
from policy_pipeline.dispatcher import StageDispatcher
from policy_pipeline.exceptions import PolicyError
from policy_pipeline.executor import ExecutionOutcome, SequentialExecutor
from policy_pipeline.loader import iter_policies
from policy_pipeline.registry import PolicyFn, PolicyRegistry
from policy_pipeline.resolver import resolve

if TYPE_CHECKING:
    from policy_pipeline.host import Host
    from policy_pipeline.schema import RegistrySnapshot

logger = structlog.get_logger()


class PolicyPipeline:
    """Registers policies, installs stage dispatchers and runs stages.

    Use it in two phases.  During the *load phase* call
    :meth:`register_policy`, :meth:`load_policies` or :meth:`load_directory`
    from a single thread.  Once traffic starts the registry is only read,
    so concurrent requests need no locking.

    A dispatcher is installed into the host the first time a policy is bound
    to a stage, and never for stages nobody uses.

    Parameters:
        host:     Lifecycle host receiving the dispatchers.  When omitted,
                  dispatchers are still created and can be fetched with
                  :meth:`dispatcher`.
        options:  Pipeline configuration.  Defaults to ``PipelineOptions()``.
        executor: Executor used for every stage.
    """

    def __init__(
        self,
        host: Host | None = None,
        options: PipelineOptions | None = None,
        executor: SequentialExecutor | None = None,
    ) -> None:
        self._host = host
        self._options = options or PipelineOptions()
        self._executor = executor or SequentialExecutor()
        self._dispatchers: dict[ApplyPoint, StageDispatcher] = {}
        self._registry = PolicyRegistry(
            self._options.default_apply_point,
            on_stage_activated=self._install_dispatcher,
        )

    # ── registration ─────────────────────────────────────────

    def register_policy(
        self,
        name: str,
        fn: PolicyFn,
        apply_point: ApplyPoint | str | bool | None = None,
    ) -> ApplyPoint | None:
        """Register one policy; see :meth:`PolicyRegistry.register`."""
        return self._registry.register(name, fn, apply_point)

    def load_policies(self, entries: Iterable[tuple[str, PolicyFn]]) -> list[str]:
        """Register ``(name, fn)`` pairs in order; the first failure aborts the batch."""
        return self._registry.load(entries)

    def load_directory(self, directory: str | Path | None = None) -> list[str]:
        """Discover and register every policy file in *directory*.

        Defaults to ``options.policy_directory``.
        """
        directory = directory if directory is not None else self._options.policy_directory
        if directory is None:
            raise ValueError("No policy directory given and none configured")
        names = self._registry.load(iter_policies(directory))
        logger.info("policy_directory_loaded", directory=str(directory), count=len(names))
        return names

    def reset(self, host: Host | None = None) -> None:
        """Clear every registered policy.

        Dispatchers already installed into the current host stay there.  If
        policies are registered again on that same host, a stage gets a second
        dispatcher and its policies will run once per installed dispatcher.
        Pass a fresh *host* to have later registrations install into it
        instead.
        """
        self._registry.reset()
        self._dispatchers.clear()
        if host is not None:
            self._host = host

    def _install_dispatcher(self, apply_point: ApplyPoint) -> None:
        dispatcher = StageDispatcher(apply_point, self)
        self._dispatchers[apply_point] = dispatcher
        if self._host is not None:
            self._host.ext(apply_point, dispatcher)

    # ── serving ──────────────────────────────────────────────

    def directives_for(self, request: Any) -> list[Any] | None:
        """Return the route-level directives for *request*, or ``None``."""
        route = getattr(request, "route", None)
        if route is None:
            return None
        if isinstance(route, Route):
            return route.directives(self._options.route_key)
        settings = getattr(route, "settings", None) or {}
        return settings.get(self._options.route_key)

    async def run_stage(self, apply_point: ApplyPoint | str, request: Any) -> ExecutionOutcome:
        """Resolve and run the policies *request* needs at *apply_point*.

        Never raises for per-request failures: a resolution error comes back
        as an ``ERRORED`` outcome with nothing executed.
        """
        stage = ApplyPoint(apply_point)
        directives = self.directives_for(request)
        if not directives:
            return ExecutionOutcome.complete()

        try:
            policies = resolve(stage, self._registry, directives, self._options.default_apply_point)
        except PolicyError as exc:
            logger.warning(
                "policy_resolution_failed",
                apply_point=stage.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return ExecutionOutcome.fail(exc)

        return await self._executor.run(policies, request)

    # ── introspection ────────────────────────────────────────

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def options(self) -> PipelineOptions:
        return self._options

    @property
    def default_apply_point(self) -> ApplyPoint:
        return self._options.default_apply_point

    def dispatcher(self, apply_point: ApplyPoint | str) -> StageDispatcher | None:
        """Return the dispatcher installed for *apply_point*, if any."""
        return self._dispatchers.get(ApplyPoint(apply_point))

    def export(self) -> RegistrySnapshot:
        return self._registry.export()
