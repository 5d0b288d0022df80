#!/usr/bin/env python3
# CUI // SP-CTI
"""Workspace path sandbox.

Every blueprint file read goes through resolve_workspace_path(), which runs
three independent checks so that a bypass of one is still caught by another:

    Layer 1  syntactic pre-filter, no filesystem access
             (.., ~, leading /, backslash, NUL, also after URL-decoding)
    Layer 2  os.path.realpath() of root + path must stay under the
             realpath() of the root                        -> ValidationError
    Layer 3  pathlib resolve() + relative_to() on the final path
                                                           -> SecurityError

Usage:
    from blueprint_mcp.security.path_sandbox import resolve_workspace_path
    full_path = resolve_workspace_path("aws/apigw-lambda-rds/README.md", root)
"""

import logging
import os
from pathlib import Path
from typing import Union
from urllib.parse import unquote

from blueprint_mcp.resilience.errors import SecurityError, ValidationError

logger = logging.getLogger("blueprints.security.sandbox")

MAX_PATH_LENGTH = 500

PathLike = Union[str, Path]


def _has_unsafe_pattern(path: str) -> bool:
    return (
        ".." in path
        or "~" in path
        or "\\" in path
        or "\0" in path
        or path.startswith("/")
    )


def check_path_syntax(relative_path: str) -> None:
    """Layer 1: reject unsafe relative paths without touching the filesystem.

    Raises:
        ValidationError: Empty/non-string input, over-long input, or an
            unsafe pattern in the raw or URL-decoded path.
    """
    if not relative_path or not isinstance(relative_path, str):
        raise ValidationError("File path must be a non-empty string")
    if len(relative_path) > MAX_PATH_LENGTH:
        raise ValidationError(
            f"Input exceeds maximum length of {MAX_PATH_LENGTH} characters"
        )
    if _has_unsafe_pattern(relative_path) or _has_unsafe_pattern(unquote(relative_path)):
        raise ValidationError("Invalid path pattern detected")


def _is_within(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def validate_path(relative_path: str, workspace_root: PathLike) -> None:
    """Validate that relative_path is safe and stays under workspace_root.

    Runs layer 1 (syntax) then layer 2 (canonical prefix comparison).
    Pure: no side effects beyond reading link targets.

    Raises:
        ValidationError: The path is malformed or resolves outside the root.
    """
    check_path_syntax(relative_path)

    canonical_root = os.path.realpath(os.fspath(workspace_root))
    canonical_path = os.path.realpath(os.path.join(canonical_root, relative_path))
    if not _is_within(canonical_path, canonical_root):
        logger.warning("Path traversal detected: %s", relative_path)
        raise ValidationError("Path traversal detected")


def resolve_workspace_path(relative_path: str, workspace_root: PathLike) -> Path:
    """Validate relative_path and return its resolved absolute path.

    Re-validates and re-resolves independently of validate_path (layer 3),
    so a caller reaching the filesystem boundary is protected even if an
    earlier layer is skipped.

    Raises:
        ValidationError: From validate_path.
        SecurityError: The final resolved path escapes the workspace root.
    """
    validate_path(relative_path, workspace_root)

    resolved_root = Path(workspace_root).resolve()
    resolved_path = (resolved_root / relative_path).resolve()
    try:
        resolved_path.relative_to(resolved_root)
    except ValueError:
        logger.error("Path outside workspace: %s", relative_path)
        raise SecurityError(f"Path outside workspace: {relative_path}")
    return resolved_path
