"""PolicyResult — the verdict a single policy invocation reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PolicyResult:
    """Immutable verdict returned (or signalled) by a policy.

    Attributes:
        allowed:     ``True`` if the request may continue past this policy.
        policy_name: Name of the policy that produced this result, when known.
        reason:      Human-readable explanation (mainly useful on denial).
        metadata:    Arbitrary extra data the policy wants to surface.
    """

    allowed: bool
    policy_name: str = ""
    reason: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    # ── Factory helpers ──────────────────────────────────────

    @staticmethod
    def allow(policy_name: str = "") -> PolicyResult:
        return PolicyResult(allowed=True, policy_name=policy_name)

    @staticmethod
    def deny(reason: str = "", policy_name: str = "", **meta: Any) -> PolicyResult:
        return PolicyResult(
            allowed=False,
            policy_name=policy_name,
            reason=reason,
            metadata=meta,
        )

    def named(self, policy_name: str) -> PolicyResult:
        """Return a copy attributed to *policy_name* unless one is already set."""
        if self.policy_name or not policy_name:
            return self
        return PolicyResult(
            allowed=self.allowed,
            policy_name=policy_name,
            reason=self.reason,
            metadata=self.metadata,
        )
