"""Plugin entry point — wire a pipeline into a host in one call."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from policy_pipeline.config import PipelineOptions
from policy_pipeline.pipeline import PolicyPipeline

if TYPE_CHECKING:
    from policy_pipeline.host import Host


def register(
    host: Host,
    options: PipelineOptions | None = None,
    **overrides: Any,
) -> PolicyPipeline:
    """Build a :class:`PolicyPipeline` for *host* and bulk-load its policies.

    Keyword *overrides* are validated together with *options*, so an
    unknown ``default_apply_point`` fails here, before any traffic.  When
    the host has an ``expose(key, value)`` method the pipeline's
    administration surface is published through it.

    Raises:
        pydantic.ValidationError: if the options are invalid.
        DuplicatePolicyError, InvalidApplyPointError, PolicyLoadError:
            if loading ``policy_directory`` fails.
    """
    if options is None:
        options = PipelineOptions(**overrides)
    elif overrides:
        options = PipelineOptions(**{**options.model_dump(), **overrides})

    pipeline = PolicyPipeline(host, options)

    expose = getattr(host, "expose", None)
    if callable(expose):
        expose("pipeline", pipeline)
        expose("load_policies", pipeline.load_policies)
        expose("registry", pipeline.registry)
        expose("reset", pipeline.reset)
        expose("default_apply_point", options.default_apply_point)

    if options.policy_directory is not None:
        pipeline.load_directory(options.policy_directory)

    return pipeline
