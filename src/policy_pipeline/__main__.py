# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Entry point for inspecting a policy directory.

Usage:
    python -m policy_pipeline <policy_directory> [default_apply_point]

Loads every policy file in the directory exactly as the pipeline would at
startup and writes the resulting registry snapshot as JSON to stdout.

Exit codes:
    0: Success
    1: Failure (error details in JSON output)
"""

from __future__ import annotations

import json
import sys

import structlog

from policy_pipeline.config import PipelineOptions
from policy_pipeline.pipeline import PolicyPipeline


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = sys.argv[1:] if argv is None else argv

    if not args:
        print(json.dumps({"error": "usage: python -m policy_pipeline <dir> [apply_point]"}))
        return 1

    # Keep stdout for the JSON document
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))

    try:
        settings: dict[str, str] = {"policy_directory": args[0]}
        if len(args) > 1:
            settings["default_apply_point"] = args[1]
        options = PipelineOptions(**settings)  # type: ignore[arg-type]

        pipeline = PolicyPipeline(options=options)
        pipeline.load_directory()

        print(pipeline.export().model_dump_json(indent=2))
        return 0

    except Exception as e:
        # Always emit valid JSON, even on unexpected errors
        print(json.dumps({"error": str(e), "error_type": type(e).__name__}))
        return 1


if __name__ == "__main__":
    sys.exit(main())
