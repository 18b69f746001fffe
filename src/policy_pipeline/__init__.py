"""policy_pipeline — ordered, fail-fast policy execution over a request lifecycle.

Policies are registered by name against one of six lifecycle stages.  Each
route lists the policies it needs; at every stage the matching ones run in
declared order and the first denial or error finalizes the request.
"""

from policy_pipeline.apply_points import (
    APPLY_POINTS,
    DISABLED,
    ApplyPoint,
    apply_at,
    is_valid_apply_point,
)
from policy_pipeline.config import PipelineOptions
from policy_pipeline.context import RequestContext, Route
from policy_pipeline.exceptions import (
    AccessDeniedError,
    DuplicatePolicyError,
    InvalidApplyPointError,
    MalformedDirectiveError,
    MissingPolicyError,
    PolicyError,
    PolicyExecutionError,
    PolicyLoadError,
)
from policy_pipeline.executor import (
    Completion,
    ExecutionOutcome,
    ExecutionState,
    SequentialExecutor,
    callback_policy,
)
from policy_pipeline.pipeline import PolicyPipeline
from policy_pipeline.plugin import register
from policy_pipeline.registry import PolicyRegistry
from policy_pipeline.result import PolicyResult

__all__ = [
    "APPLY_POINTS",
    "DISABLED",
    "AccessDeniedError",
    "ApplyPoint",
    "Completion",
    "DuplicatePolicyError",
    "ExecutionOutcome",
    "ExecutionState",
    "InvalidApplyPointError",
    "MalformedDirectiveError",
    "MissingPolicyError",
    "PipelineOptions",
    "PolicyError",
    "PolicyExecutionError",
    "PolicyLoadError",
    "PolicyPipeline",
    "PolicyRegistry",
    "PolicyResult",
    "RequestContext",
    "Route",
    "SequentialExecutor",
    "apply_at",
    "callback_policy",
    "is_valid_apply_point",
    "register",
]
