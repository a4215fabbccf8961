"""Exception types raised by FolderLens."""

from __future__ import annotations
import os
from typing import Any


class FolderLensError(Exception):
    pass


class InvalidPathError(FolderLensError, ValueError):
    """A path argument was rejected before touching the filesystem."""


class TreeLookupError(FolderLensError, LookupError):
    """The target node is missing from the tree or cannot take children."""


class ConfigError(FolderLensError):
    pass


def check_path(path: Any) -> str:
    """Validate a path argument and return it absolute and normalized."""
    if isinstance(path, os.PathLike):
        path = os.fspath(path)
    if not isinstance(path, str):
        raise InvalidPathError(f"path must be a string, got {type(path).__name__}")
    if not path.strip():
        raise InvalidPathError("path must not be empty")
    return os.path.normpath(os.path.abspath(path))
