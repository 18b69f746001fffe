# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Discovery of policy files in a directory.

Every ``.py`` file not starting with ``_`` holds one policy.  The policy's
name is the file stem and the module must define a callable ``policy``.
A module-level ``apply_point`` annotates the function when the function
carries no ``apply_point`` of its own.
"""

from __future__ import annotations

import importlib.util
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, cast

from policy_pipeline.apply_points import apply_point_of
from policy_pipeline.exceptions import PolicyLoadError

_MODULE_PREFIX = "policy_pipeline_policies"


def policy_files(directory: str | Path) -> list[Path]:
    """Return the policy files in *directory*, sorted by name.

    Raises:
        PolicyLoadError: If *directory* does not exist or is not a directory
    """
    path = Path(directory)
    if not path.is_dir():
        raise PolicyLoadError(str(directory), "not a directory")
    return sorted(
        p for p in path.iterdir() if p.is_file() and p.suffix == ".py" and not p.name.startswith("_")
    )


def load_policy_file(policy_path: str | Path) -> Callable[..., Any]:
    """Import one policy file and return its ``policy`` callable.

    Args:
        policy_path: Path to the ``.py`` file

    Returns:
        The policy callable, annotated with the module's ``apply_point``
        when it has none itself

    Raises:
        PolicyLoadError: If the file cannot be imported or defines no
            callable ``policy``
    """
    path = Path(policy_path)

    if not path.is_file():
        raise PolicyLoadError(str(path), "file not found")

    if path.suffix != ".py":
        raise PolicyLoadError(str(path), "policy must be a .py file")

    module_name = f"{_MODULE_PREFIX}.{path.stem}"

    try:
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise PolicyLoadError(str(path), "cannot create module spec")

        module = importlib.util.module_from_spec(spec)

        # Register module so imports within it work
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

    except PolicyLoadError:
        raise
    except SyntaxError as e:
        raise PolicyLoadError(str(path), f"syntax error: {e}") from e
    except ImportError as e:
        raise PolicyLoadError(str(path), f"import error: {e}") from e
    except Exception as e:
        raise PolicyLoadError(str(path), str(e)) from e

    fn = getattr(module, "policy", None)
    if fn is None:
        raise PolicyLoadError(str(path), "module must define a 'policy' function")
    if not callable(fn):
        raise PolicyLoadError(str(path), "'policy' must be callable")

    if apply_point_of(fn) is None and hasattr(module, "apply_point"):
        try:
            fn.apply_point = module.apply_point  # type: ignore[attr-defined]
        except AttributeError as e:
            raise PolicyLoadError(str(path), f"cannot annotate apply point: {e}") from e

    return cast(Callable[..., Any], fn)


def iter_policies(directory: str | Path) -> Iterator[tuple[str, Callable[..., Any]]]:
    """Yield ``(name, policy)`` pairs lazily, one file at a time."""
    for path in policy_files(directory):
        yield path.stem, load_policy_file(path)


def discover_policies(directory: str | Path) -> list[tuple[str, Callable[..., Any]]]:
    """Import every policy file in *directory* and return ``(name, policy)`` pairs."""
    return list(iter_policies(directory))
