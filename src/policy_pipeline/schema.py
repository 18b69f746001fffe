# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Data transfer objects describing registry state.

These Pydantic models are what ``PolicyRegistry.export()`` and the
``python -m policy_pipeline`` inspector produce.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from policy_pipeline.apply_points import ApplyPoint


class PolicyEntrySchema(BaseModel):
    """One registered policy.

    Attributes:
        name: Unique policy name
        apply_point: Stage the policy runs at, ``None`` when reserved
        description: First line of the policy's docstring, if any
    """

    name: str
    apply_point: ApplyPoint | None = None
    description: str = ""


class RegistrySnapshot(BaseModel):
    """JSON-serializable view of a registry.

    Attributes:
        default_apply_point: Stage used when a policy declares none
        policies: Every registered name in registration order
        stages: Policy names bound to each stage, in registration order
        reserved: Names registered with the disabled marker
        installed: Stages whose dispatcher has been installed
    """

    default_apply_point: ApplyPoint
    policies: list[PolicyEntrySchema] = Field(default_factory=list)
    stages: dict[ApplyPoint, list[str]] = Field(default_factory=dict)
    reserved: list[str] = Field(default_factory=list)
    installed: list[ApplyPoint] = Field(default_factory=list)

    @property
    def policy_count(self) -> int:
        return len(self.policies)
