from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class Entry:
    name: str
    path: str
    is_dir: bool
    size: int = 0
    has_contents: bool = False
    # None = not expanded yet, [] = expanded and empty
    contents: Optional[List["Entry"]] = None
    error: Optional[str] = None

    @property
    def is_inaccessible(self) -> bool:
        return self.error is not None

    @property
    def is_expanded(self) -> bool:
        return self.contents is not None

    def iter_entries(self) -> Iterator["Entry"]:
        """Yield this entry and every materialized descendant."""
        yield self
        for child in self.contents or ():
            yield from child.iter_entries()

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "isDirectory": self.is_dir,
            "size": self.size,
            "hasContents": self.has_contents,
        }
        if self.contents is not None:
            d["contents"] = [c.to_dict() for c in self.contents]
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass(frozen=True)
class ProgressEvent:
    files_count: int
    dirs_count: int
    current_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filesCount": self.files_count,
            "dirsCount": self.dirs_count,
            "currentPath": self.current_path,
        }


@dataclass
class ScanResult:
    root_path: str
    contents: List[Entry]
    session_id: int = 0
    files: int = 0
    dirs: int = 0
    elapsed_sec: float = 0.0
    cancelled: bool = False

    def as_tree(self) -> Entry:
        name = os.path.basename(self.root_path.rstrip("\\/")) or self.root_path
        return Entry(
            name=name,
            path=self.root_path,
            is_dir=True,
            size=sum(c.size for c in self.contents),
            has_contents=bool(self.contents),
            contents=list(self.contents),
        )


@dataclass
class DeleteResult:
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            d["error"] = self.error
        return d
