"""
FILE: kanmd/core/paths.py
PURPOSE: Path guard for every user-supplied name and computed path
EXPORTS:
  - validate_component(name) -> None
  - assert_within_root(path, root) -> Path
  - card_path(root, column, card_id) -> Path
DEPENDENCIES:
  - os, re, pathlib (stdlib)
  - kanmd.core.exceptions (InvalidNameError, PathTraversalError)
NOTES:
  - validate_component runs before any filesystem access
  - assert_within_root runs on every computed path before read/write/delete,
    canonicalizing symlinks so a linked column cannot point outside the root
"""

import os
import re
from pathlib import Path

from .constants import CARD_SUFFIX
from .exceptions import InvalidNameError, PathTraversalError

SAFE_COMPONENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_component(name: str) -> None:
    """
    Reject anything that is not a plain column name or card ID.

    Raises:
        InvalidNameError: If name is empty, '.', '..', or has characters
            outside [A-Za-z0-9_-]
    """
    if not isinstance(name, str) or not SAFE_COMPONENT_RE.fullmatch(name):
        raise InvalidNameError(name)
    if name in (".", ".."):
        raise InvalidNameError(name)


def assert_within_root(path, root) -> Path:
    """
    Canonicalize path and make sure it is root itself or lives under root.

    Returns:
        The canonical path

    Raises:
        PathTraversalError: If the canonical path escapes root
    """
    resolved = Path(os.path.realpath(path))
    root_resolved = Path(os.path.realpath(root))
    root_prefix = str(root_resolved).rstrip(os.sep) + os.sep
    if resolved != root_resolved and not str(resolved).startswith(root_prefix):
        raise PathTraversalError(path)
    return resolved


def card_path(root: Path, column: str, card_id: str) -> Path:
    """Build and check <root>/<column>/<card_id>.md."""
    path = Path(root) / column / f"{card_id}{CARD_SUFFIX}"
    assert_within_root(path, root)
    return path
