"""Pipeline configuration using Pydantic Settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from policy_pipeline.apply_points import ApplyPoint


class PipelineOptions(BaseSettings):
    """Options recognised by the pipeline, also readable from the environment.

    Attributes:
        default_apply_point: Stage used by any policy that declares none.
                             Must be one of the six apply points.
        policy_directory:    Directory bulk-loaded at startup, if set.
        route_key:           Key looked up in ``Route.settings`` for the
                             route's policy directives.
    """

    model_config = SettingsConfigDict(
        env_prefix="POLICY_PIPELINE_",
        extra="ignore",
    )

    default_apply_point: ApplyPoint = ApplyPoint.ON_PRE_HANDLER
    policy_directory: Path | None = None
    route_key: str = Field(default="policies", min_length=1)
