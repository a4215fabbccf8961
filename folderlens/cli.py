"""Command-line front end: scan a folder, expand subfolders, delete, reveal."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional, TextIO

from .config import ScanConfig, load_config
from .drives import share_of_volume
from .errors import FolderLensError, check_path
from .models import Entry, ProgressEvent
from .scanner import scan_directory, scan_root
from .tree import TreeStore
from .utils import delete_path, format_bytes, reveal_in_file_manager


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="folderlens", description="Show what takes up space in a folder.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="more logging (-v info, -vv debug)")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("scan", help="scan a folder and list its children by size")
    s.add_argument("path")
    s.add_argument("--expand", action="append", default=[], metavar="SUBPATH",
                   help="also list the contents of this subfolder (repeatable)")
    s.add_argument("--progress", action="store_true", help="print progress to stderr")
    s.add_argument("--workers", type=_positive_int, default=None)
    s.add_argument("--progress-every", type=_positive_int, default=None)
    s.add_argument("--follow-symlinks", action="store_true", default=None)
    s.add_argument("--json", action="store_true", help="print the tree as JSON")

    d = sub.add_parser("delete", help="delete a file or folder")
    d.add_argument("path")
    d.add_argument("--yes", action="store_true", help="confirm the deletion")

    r = sub.add_parser("reveal", help="show a path in the system file manager")
    r.add_argument("path")
    return p


def _merge_config(cfg: ScanConfig, args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        progress_every=args.progress_every or cfg.progress_every,
        workers=args.workers or cfg.workers,
        follow_symlinks=cfg.follow_symlinks if args.follow_symlinks is None else args.follow_symlinks,
        log_level=cfg.log_level,
    )


def _sorted(entries: List[Entry]) -> List[Entry]:
    # folders first, then biggest first
    return sorted(entries, key=lambda e: (not e.is_dir, -e.size, e.name.lower()))


def render_tree(node: Entry, out: TextIO, depth: int = 0) -> None:
    kids = node.contents or []
    parent_size = sum(k.size for k in kids)
    for e in _sorted(kids):
        pct = f"{100.0 * e.size / parent_size:5.1f}%" if parent_size else "    -"
        mark = "/" if e.is_dir else ""
        if e.is_inaccessible:
            mark += f"  [inaccessible: {e.error}]"
        elif e.is_dir and e.has_contents and not e.is_expanded:
            mark += " +"
        out.write(f"{format_bytes(e.size):>12} {pct}  {'  ' * depth}{e.name}{mark}\n")
        if e.is_expanded:
            render_tree(e, out, depth + 1)


def _expand_chain(store: TreeStore, target: str, cfg: ScanConfig) -> None:
    """Expand every collapsed folder between the root and target, then target."""
    root = store.root
    try:
        rel = os.path.relpath(target, root.path)
    except ValueError:
        # different drives on Windows
        raise FolderLensError(f"{target} is not inside {root.path}") from None
    if rel in (os.curdir, os.pardir) or rel.startswith(os.pardir + os.sep):
        raise FolderLensError(f"{target} is not inside {root.path}")
    cur = root.path
    for part in rel.split(os.sep):
        cur = os.path.join(cur, part)
        node = store.find(cur)
        if node is None:
            raise FolderLensError(f"not found in scan: {cur}")
        if not node.is_expanded:
            entries = scan_directory(cur, follow_symlinks=cfg.follow_symlinks,
                                     workers=cfg.workers, progress_every=cfg.progress_every)
            store.attach(cur, entries)


def _cmd_scan(args: argparse.Namespace, cfg: ScanConfig) -> int:
    def prog(ev: ProgressEvent):
        sys.stderr.write(f"\r{ev.files_count} files, {ev.dirs_count} folders  {ev.current_path[-60:]:<60}")
        sys.stderr.flush()

    res = scan_root(args.path, progress=prog if args.progress else None,
                    follow_symlinks=cfg.follow_symlinks, workers=cfg.workers,
                    progress_every=cfg.progress_every)
    if args.progress:
        sys.stderr.write("\n")

    store = TreeStore()
    store.reset(res)
    for sub in args.expand:
        _expand_chain(store, check_path(os.path.join(res.root_path, sub)), cfg)

    root = store.root
    if args.json:
        json.dump(root.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    print(f"{root.path}  {format_bytes(root.size)}")
    render_tree(root, sys.stdout)
    summary = f"{res.files} files, {res.dirs} folders scanned in {res.elapsed_sec:.2f}s"
    share = share_of_volume(root.size, root.path)
    if share is not None:
        summary += f"; {share:.1f}% of the used space on this volume"
    print(summary)
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    ap = check_path(args.path)
    if not os.path.lexists(ap):
        print(f"no such file or folder: {ap}", file=sys.stderr)
        return 1
    if not args.yes:
        print(f"refusing to delete {ap} without --yes", file=sys.stderr)
        return 1
    res = delete_path(ap, os.path.isdir(ap) and not os.path.islink(ap))
    if not res.success:
        print(f"Error deleting item: {res.error}", file=sys.stderr)
        return 1
    print(f"deleted {ap}")
    return 0


def _cmd_reveal(args: argparse.Namespace) -> int:
    return 0 if reveal_in_file_manager(check_path(args.path)) else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config()
    except FolderLensError as e:
        print(f"folderlens: {e}", file=sys.stderr)
        return 2

    level = cfg.log_level
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "scan":
            return _cmd_scan(args, _merge_config(cfg, args))
        if args.command == "delete":
            return _cmd_delete(args)
        return _cmd_reveal(args)
    except FolderLensError as e:
        print(f"folderlens: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"folderlens: {e}", file=sys.stderr)
        return 1
