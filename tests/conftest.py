"""Shared test fixtures for FolderLens tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Union

import pytest

Layout = Dict[str, Union[int, "Layout"]]


def build_tree(base: Path, layout: Layout) -> None:
    """Create files and folders under base.

    An int value is a file of that many bytes; a dict value is a folder.
    """
    base.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        p = base / name
        if isinstance(value, dict):
            build_tree(p, value)
        else:
            p.write_bytes(b"x" * value)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Layout], Path]:
    def _make(layout: Layout, name: str = "root") -> Path:
        root = tmp_path / name
        build_tree(root, layout)
        return root
    return _make


@pytest.fixture
def by_name():
    def _index(entries):
        return {e.name: e for e in entries}
    return _index


@pytest.fixture
def symlinks_supported(tmp_path: Path) -> bool:
    probe = tmp_path / "probe-link"
    try:
        os.symlink(tmp_path, probe, target_is_directory=True)
    except (OSError, NotImplementedError):
        return False
    probe.unlink()
    return True
