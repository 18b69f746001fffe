"""Custom exceptions for the policy_pipeline package."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from policy_pipeline.result import PolicyResult


class PolicyError(Exception):
    """Base exception for all policy-related errors.

    ``status_code`` is the HTTP-style status a host should answer with when
    the error finalizes a request.
    """

    status_code: int = 500


class DuplicatePolicyError(PolicyError):
    """Raised when a policy name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Trying to add a duplicate policy: {name}")


class InvalidApplyPointError(PolicyError):
    """Raised when a policy declares an apply point outside the valid set."""

    def __init__(self, value: Any, name: str | None = None) -> None:
        self.value = value
        self.name = name
        if name is None:
            msg = f"Trying to use incorrect applyPoint for the dynamic policy: {value}"
        else:
            msg = f"Trying to set incorrect applyPoint for the policy '{name}': {value}"
        super().__init__(msg)


class MissingPolicyError(PolicyError):
    """Raised when a route references a policy name that was never registered."""

    status_code = 501

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Missing policy: {name}")


class MalformedDirectiveError(PolicyError):
    """Raised when a route directive is neither a policy name nor a callable."""

    def __init__(self, directive: Any) -> None:
        self.directive = directive
        super().__init__("Policy not specified by name or by function.")


class AccessDeniedError(PolicyError):
    """Raised when a policy denies access."""

    status_code = 403

    def __init__(self, result: PolicyResult) -> None:
        self.result = result
        self.reason = result.reason
        if result.policy_name:
            msg = f"Access denied by policy '{result.policy_name}': {result.reason}"
        else:
            msg = f"Access denied: {result.reason}"
        super().__init__(msg)


class PolicyExecutionError(PolicyError):
    """Convenience error for policies reporting an internal failure.

    The executor propagates whatever a policy raises unchanged; this type is
    only a default for policy authors who have nothing more specific.
    """

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        self.status_code = status_code
        super().__init__(message)


class PolicyLoadError(PolicyError):
    """Raised when a policy file cannot be discovered or imported."""

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        msg = f"Cannot load policy from '{path}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
