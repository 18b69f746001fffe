"""StageDispatcher — the callback installed into the host for one stage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from policy_pipeline.apply_points import ApplyPoint

if TYPE_CHECKING:
    from policy_pipeline.host import Toolkit
    from policy_pipeline.pipeline import PolicyPipeline

logger = structlog.get_logger()


class StageDispatcher:
    """Resolves and runs a request's policies when the host reaches a stage.

    Resolution and execution errors finalize only the failing request;
    nothing raised by a policy escapes into the host.  No outcome is
    emitted once the request has already been finalized.
    """

    def __init__(self, apply_point: ApplyPoint, pipeline: PolicyPipeline) -> None:
        self.apply_point = apply_point
        self._pipeline = pipeline

    def __repr__(self) -> str:
        return f"StageDispatcher({self.apply_point.value!r})"

    async def __call__(self, request: Any, toolkit: Toolkit) -> None:
        outcome = await self._pipeline.run_stage(self.apply_point, request)

        if toolkit.finalized:
            logger.debug(
                "outcome_suppressed",
                apply_point=self.apply_point.value,
                state=outcome.state.value,
            )
            return

        if outcome.completed:
            toolkit.proceed()
        else:
            toolkit.finalize(outcome.error)
