from __future__ import annotations
import logging
import os
import threading
from dataclasses import replace
from typing import List, Optional

from .errors import TreeLookupError, check_path
from .models import Entry, ScanResult

logger = logging.getLogger(__name__)


def _key(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def find(root: Entry, path: str) -> Optional[Entry]:
    """Depth-first lookup through the materialized part of the tree."""
    target = _key(path)
    stack = [root]
    while stack:
        node = stack.pop()
        if _key(node.path) == target:
            return node
        if node.contents:
            stack.extend(node.contents)
    return None


def _attach(node: Entry, target: str, contents: List[Entry]) -> Optional[Entry]:
    if _key(node.path) == target:
        if not node.is_dir or not node.has_contents:
            raise TreeLookupError(f"cannot expand {node.path}: not a directory with contents")
        return replace(node, contents=list(contents))
    if not node.contents:
        return None
    for i, child in enumerate(node.contents):
        new_child = _attach(child, target, contents)
        if new_child is not None:
            kids = list(node.contents)
            kids[i] = new_child
            return replace(node, contents=kids)
    return None


def attach(root: Entry, target_path: str, contents: List[Entry]) -> Entry:
    """Return a new tree with contents set on the node at target_path.

    Replaces whatever was attached before. Only the ancestors of the target are
    rebuilt; every other subtree is shared with the old tree.
    """
    new_root = _attach(root, _key(target_path), contents)
    if new_root is None:
        raise TreeLookupError(f"not in tree: {target_path}")
    return new_root


def _remove(node: Entry, target: str) -> Optional[Entry]:
    if not node.contents:
        return None
    kids = [c for c in node.contents if _key(c.path) != target]
    if len(kids) != len(node.contents):
        return replace(node, contents=kids)
    for i, child in enumerate(node.contents):
        new_child = _remove(child, target)
        if new_child is not None:
            kids = list(node.contents)
            kids[i] = new_child
            return replace(node, contents=kids)
    return None


def remove(root: Entry, target_path: str) -> Entry:
    """Return a new tree without the node at target_path and its subtree.

    Ancestor sizes are left as they were; they go stale until the next scan.
    An unknown path leaves the tree untouched.
    """
    target = _key(target_path)
    if _key(root.path) == target:
        raise TreeLookupError(f"cannot remove the scan root: {target_path}")
    new_root = _remove(root, target)
    return root if new_root is None else new_root


class TreeStore:
    """Holds the current tree; every mutation swaps in a rebuilt root under a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._root: Optional[Entry] = None
        self.session_id = 0

    @property
    def root(self) -> Optional[Entry]:
        return self._root

    def reset(self, result: ScanResult) -> Entry:
        with self._lock:
            self._root = result.as_tree()
            self.session_id = result.session_id
            return self._root

    def clear(self) -> None:
        with self._lock:
            self._root = None
            self.session_id = 0

    def is_root(self, path: str) -> bool:
        root = self._root
        return root is not None and _key(root.path) == _key(check_path(path))

    def find(self, path: str) -> Optional[Entry]:
        root = self._root
        return find(root, check_path(path)) if root is not None else None

    def attach(self, path: str, contents: List[Entry]) -> Entry:
        with self._lock:
            if self._root is None:
                raise TreeLookupError("no tree loaded")
            self._root = attach(self._root, check_path(path), contents)
            logger.debug("attached %d entries under %s", len(contents), path)
            return self._root

    def remove(self, path: str) -> Optional[Entry]:
        with self._lock:
            if self._root is None:
                return None
            self._root = remove(self._root, check_path(path))
            return self._root
