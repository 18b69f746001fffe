"""Sequential, fail-fast execution of a resolved policy list.

Only one policy is in flight at a time.  A policy may do asynchronous work
before reporting its verdict; the executor waits for it without any timeout,
so a policy that never reports stalls its request.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

import structlog

from policy_pipeline.exceptions import AccessDeniedError, PolicyExecutionError
from policy_pipeline.resolver import ResolvedPolicy
from policy_pipeline.result import PolicyResult

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


class ExecutionState(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    CONTINUED = "continued"
    DENIED = "denied"
    ERRORED = "errored"
    COMPLETED = "completed"


TERMINAL_STATES = frozenset(
    {ExecutionState.DENIED, ExecutionState.ERRORED, ExecutionState.COMPLETED}
)


@dataclass(frozen=True)
class ExecutionOutcome:
    """Terminal result of running one stage's policies for one request.

    Attributes:
        state:    One of the terminal :class:`ExecutionState` values.
        error:    For ``ERRORED`` the originating exception, unchanged.  For
                  ``DENIED`` an :class:`AccessDeniedError` carrying the reason.
        result:   The denying policy's verdict, when denied.
        executed: Names of the policies that ran, in order.
    """

    state: ExecutionState
    error: BaseException | None = None
    result: PolicyResult | None = None
    executed: tuple[str, ...] = ()

    @property
    def completed(self) -> bool:
        return self.state is ExecutionState.COMPLETED

    @property
    def denied(self) -> bool:
        return self.state is ExecutionState.DENIED

    @property
    def errored(self) -> bool:
        return self.state is ExecutionState.ERRORED

    @property
    def reason(self) -> str:
        return self.result.reason if self.result is not None else ""

    @staticmethod
    def complete(executed: Sequence[str] = ()) -> ExecutionOutcome:
        return ExecutionOutcome(ExecutionState.COMPLETED, executed=tuple(executed))

    @staticmethod
    def fail(error: BaseException, executed: Sequence[str] = ()) -> ExecutionOutcome:
        return ExecutionOutcome(ExecutionState.ERRORED, error=error, executed=tuple(executed))

    @staticmethod
    def deny(result: PolicyResult, executed: Sequence[str] = ()) -> ExecutionOutcome:
        return ExecutionOutcome(
            ExecutionState.DENIED,
            error=AccessDeniedError(result),
            result=result,
            executed=tuple(executed),
        )


class Completion:
    """One-shot completion signal handed to callback-style policies.

    Call it as ``done(error=None, can_continue=False, reason="")``.  Only
    the first call counts; later calls are logged and ignored.  It may be
    called from any thread; off-loop calls are handed to the event loop
    that created the signal.
    """

    def __init__(self, policy_name: str = "") -> None:
        self._policy_name = policy_name
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[PolicyResult] = self._loop.create_future()
        self._lock = threading.Lock()
        self._signalled = False

    @property
    def signalled(self) -> bool:
        return self._signalled

    def __call__(
        self,
        error: BaseException | str | None = None,
        can_continue: bool = False,
        reason: str = "",
    ) -> bool:
        """Record the verdict.  Returns ``False`` if a verdict was already recorded."""
        with self._lock:
            if self._signalled:
                logger.warning("completion_ignored", policy=self._policy_name)
                return False
            self._signalled = True

        verdict: PolicyResult | BaseException
        if error is not None:
            if not isinstance(error, BaseException):
                error = PolicyExecutionError(str(error))
            verdict = error
        elif can_continue:
            verdict = PolicyResult.allow(self._policy_name)
        else:
            verdict = PolicyResult.deny(reason, policy_name=self._policy_name)

        if self._on_loop_thread():
            self._settle(verdict)
        else:
            self._loop.call_soon_threadsafe(self._settle, verdict)
        return True

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _settle(self, verdict: PolicyResult | BaseException) -> None:
        if self._future.done():
            return
        if isinstance(verdict, BaseException):
            self._future.set_exception(verdict)
        else:
            self._future.set_result(verdict)

    async def wait(self) -> PolicyResult:
        return await self._future

def callback_policy(fn: F) -> F:
    """Mark *fn* as a ``(request, done)`` policy that reports through a :class:`Completion`."""
    fn.uses_completion = True  # type: ignore[attr-defined]
    return fn


def _as_result(value: Any, policy_name: str) -> PolicyResult:
    if isinstance(value, PolicyResult):
        return value.named(policy_name)
    if value is None or value:
        return PolicyResult.allow(policy_name)
    return PolicyResult.deny(policy_name=policy_name)


class SequentialExecutor:
    """Runs policies one at a time, stopping at the first denial or error.

    Exceptions raised by a policy become an ``ERRORED`` outcome carrying the
    exception unchanged; they never escape :meth:`run`.
    """

    async def run(
        self,
        policies: Sequence[ResolvedPolicy],
        request: Any,
    ) -> ExecutionOutcome:
        executed: list[str] = []
        logger.debug(
            "policy_state",
            count=len(policies),
            state=ExecutionState.PENDING.value,
        )

        for index, policy in enumerate(policies):
            logger.debug(
                "policy_state",
                policy=policy.name,
                index=index,
                state=ExecutionState.RUNNING.value,
            )
            try:
                result = await self._invoke(policy, request)
            except Exception as exc:
                executed.append(policy.name)
                logger.warning("policy_errored", policy=policy.name, error=str(exc))
                return ExecutionOutcome.fail(exc, executed)

            executed.append(policy.name)
            if not result.allowed:
                logger.info("policy_denied", policy=policy.name, reason=result.reason)
                return ExecutionOutcome.deny(result, executed)

            logger.debug(
                "policy_state",
                policy=policy.name,
                index=index,
                state=ExecutionState.CONTINUED.value,
            )

        return ExecutionOutcome.complete(executed)

    async def _invoke(self, policy: ResolvedPolicy, request: Any) -> PolicyResult:
        fn = policy.fn
        if getattr(fn, "uses_completion", False):
            done = Completion(policy.name)
            try:
                returned = fn(request, done)
                if inspect.isawaitable(returned):
                    await returned
            except Exception as exc:
                # The first signal wins; an exception after a verdict is ignored.
                done(error=exc)
            return await done.wait()

        returned = fn(request)
        if inspect.isawaitable(returned):
            returned = await returned
        return _as_result(returned, policy.name)
