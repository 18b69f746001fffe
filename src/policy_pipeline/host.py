"""Host lifecycle contract and a small in-process reference host.

A host owns the request lifecycle.  It lets the pipeline install one
handler per apply point (:meth:`Host.ext`) and gives each handler a
:class:`Toolkit` to move the request on, finalize it, or check whether it
was already finalized.

:class:`LifecycleHost` implements that contract without any network layer.
It is what the test-suite and the examples drive requests through.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from policy_pipeline.apply_points import APPLY_POINTS, ApplyPoint
from policy_pipeline.context import RequestContext, Route
from policy_pipeline.directives import parse_directives

logger = structlog.get_logger()


class Toolkit(Protocol):
    """What a stage handler may do with the request it is handling."""

    @property
    def finalized(self) -> bool: ...

    def proceed(self) -> None: ...

    def finalize(self, outcome: Any) -> None: ...


StageHandler = Callable[[Any, Toolkit], Awaitable[None]]


class Host(Protocol):
    """Anything that can run a handler each time a request reaches a stage."""

    def ext(self, apply_point: ApplyPoint, handler: StageHandler) -> None: ...


# ── reference host ───────────────────────────────────────────


@dataclass
class Response:
    """Final answer produced for one request."""

    status_code: int = 200
    payload: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StageToolkit:
    """Toolkit tied to one request; shared by every stage handler it meets."""

    def __init__(self) -> None:
        self.response: Response | None = None

    @property
    def finalized(self) -> bool:
        return self.response is not None

    def proceed(self) -> None:
        if self.finalized:
            raise RuntimeError("Cannot continue a request that was already finalized")

    def finalize(self, outcome: Any) -> None:
        if self.finalized:
            raise RuntimeError("Request was already finalized")
        if isinstance(outcome, BaseException):
            self.response = Response(
                status_code=getattr(outcome, "status_code", 500),
                payload={"error": str(outcome)},
                error=outcome,
            )
        elif isinstance(outcome, Response):
            self.response = outcome
        else:
            self.response = Response(payload=outcome)


class LifecycleHost:
    """Minimal host running the six stages in order around a route handler.

    Stage handlers run in installation order.  Once a request is finalized
    the remaining stages are skipped.  The route handler runs between
    ``onPreHandler`` and ``onPostHandler``; its return value becomes the
    response payload unless a later stage finalizes the request first.
    """

    def __init__(self) -> None:
        self._extensions: dict[ApplyPoint, list[StageHandler]] = {p: [] for p in APPLY_POINTS}
        self._routes: dict[str, Route] = {}
        self.exposed: dict[str, Any] = {}

    # ── Host protocol ────────────────────────────────────────

    def ext(self, apply_point: ApplyPoint, handler: StageHandler) -> None:
        stage = ApplyPoint(apply_point)
        self._extensions[stage].append(handler)
        logger.debug("extension_added", apply_point=stage.value)

    def expose(self, key: str, value: Any) -> None:
        self.exposed[key] = value

    def extensions(self, apply_point: ApplyPoint | str) -> list[StageHandler]:
        return list(self._extensions[ApplyPoint(apply_point)])

    # ── routes ───────────────────────────────────────────────

    def route(
        self,
        path: str,
        *,
        policies: list[Any] | None = None,
        handler: Callable[[RequestContext], Any] | None = None,
        **settings: Any,
    ) -> Route:
        """Declare a route.  Malformed policy directives are rejected here."""
        if policies is not None:
            parse_directives(policies)
        route = Route(path=path, policies=policies, settings=settings, handler=handler)
        self._routes[path] = route
        return route

    # ── request processing ───────────────────────────────────

    async def inject(
        self,
        target: str | Route,
        *,
        user_id: str = "",
        input: dict[str, Any] | None = None,
    ) -> Response:
        """Push one request through the lifecycle and return its response."""
        route = target if isinstance(target, Route) else self._routes[target]
        request = RequestContext(route=route, user_id=user_id, input=input or {})
        toolkit = StageToolkit()
        payload: Any = None

        for apply_point in APPLY_POINTS:
            for handler in self._extensions[apply_point]:
                await handler(request, toolkit)
                if toolkit.response is not None:
                    return toolkit.response

            if apply_point is ApplyPoint.ON_PRE_HANDLER and route.handler is not None:
                payload = route.handler(request)
                if inspect.isawaitable(payload):
                    payload = await payload

        toolkit.finalize(payload)
        assert toolkit.response is not None
        return toolkit.response
