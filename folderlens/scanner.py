from __future__ import annotations
import itertools
import logging
import os
import stat as statmod
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Set, Tuple

from .config import PROGRESS_FILE_EVERY
from .errors import InvalidPathError, check_path
from .models import Entry, ProgressEvent, ScanResult

logger = logging.getLogger(__name__)

ProgressCb = Callable[[ProgressEvent], None]
CancelCb = Callable[[], bool]

_session_ids = itertools.count(1)


def next_session_id() -> int:
    return next(_session_ids)


class ScanSession:
    """Running counters for one scan call.

    All updates go through one lock and progress is emitted while holding it,
    so a listener always sees non-decreasing counts even when sibling
    directories are aggregated on several threads.
    """

    def __init__(self,
                 progress: Optional[ProgressCb] = None,
                 cancel_flag: Optional[CancelCb] = None,
                 progress_every: int = PROGRESS_FILE_EVERY,
                 session_id: Optional[int] = None):
        self.session_id = session_id if session_id is not None else next_session_id()
        self.progress = progress
        self.cancel_flag = cancel_flag
        self.progress_every = max(1, int(progress_every))
        self.files = 0
        self.dirs = 0
        self.current_path = ""
        self._lock = threading.Lock()
        self._last_emitted: Tuple[int, int] = (0, 0)
        self._seen: Set[Tuple[int, int]] = set()

    def cancelled(self) -> bool:
        return bool(self.cancel_flag and self.cancel_flag())

    def visit_dir(self, path: str) -> None:
        with self._lock:
            self.dirs += 1
            self.current_path = path
            self._emit()

    def visit_file(self, path: str) -> None:
        with self._lock:
            self.files += 1
            self.current_path = path
            if self.files % self.progress_every == 0:
                self._emit()

    def claim(self, st: os.stat_result) -> bool:
        """Mark a directory inode as visited; False if it was seen before."""
        key = (st.st_dev, st.st_ino)
        with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def finish(self) -> None:
        with self._lock:
            if (self.files, self.dirs) != self._last_emitted:
                self._emit()

    def _emit(self) -> None:
        self._last_emitted = (self.files, self.dirs)
        if self.progress:
            self.progress(ProgressEvent(self.files, self.dirs, self.current_path))


# Thin wrappers so tests can simulate unreadable entries.
def _open_dir(path: str):
    return os.scandir(path)


def _entry_stat(entry: os.DirEntry, follow_symlinks: bool) -> os.stat_result:
    return entry.stat(follow_symlinks=follow_symlinks)


def _is_dir(entry: os.DirEntry, follow_symlinks: bool) -> bool:
    # usually answered from d_type, without another stat
    try:
        return entry.is_dir(follow_symlinks=follow_symlinks)
    except OSError:
        return False


def _describe(exc: OSError) -> str:
    return exc.strerror or str(exc) or type(exc).__name__


def _aggregate(dir_path: str, session: ScanSession, follow_symlinks: bool) -> Tuple[int, int]:
    """Return (total bytes, number of immediate children) for dir_path.

    Only a failure to list dir_path itself raises; anything below it that
    cannot be read counts as zero.
    """
    session.visit_dir(dir_path)
    total = 0
    count = 0
    with _open_dir(dir_path) as it:
        for entry in it:
            count += 1
            if session.cancelled():
                break
            try:
                st = _entry_stat(entry, follow_symlinks)
            except OSError as e:
                logger.debug("skip %s: %s", entry.path, _describe(e))
                continue

            if statmod.S_ISDIR(st.st_mode):
                if follow_symlinks and not session.claim(st):
                    continue
                try:
                    size, _ = _aggregate(entry.path, session, follow_symlinks)
                except OSError as e:
                    logger.debug("cannot list %s: %s", entry.path, _describe(e))
                    continue
                total += size
            else:
                session.visit_file(entry.path)
                total += int(st.st_size or 0)
    return total, count


def directory_size(path, session: Optional[ScanSession] = None, follow_symlinks: bool = False) -> int:
    """Total byte size of every file below path, any depth."""
    root = check_path(path)
    if session is None:
        session = ScanSession()
    if follow_symlinks:
        try:
            session.claim(os.stat(root))
        except OSError:
            pass
    try:
        size, _ = _aggregate(root, session, follow_symlinks)
    except OSError as e:
        logger.debug("cannot list %s: %s", root, _describe(e))
        size = 0
    session.finish()
    return size


def _measure(entry: Entry, session: ScanSession, follow_symlinks: bool) -> None:
    try:
        size, count = _aggregate(entry.path, session, follow_symlinks)
    except OSError as e:
        logger.debug("cannot list %s: %s", entry.path, _describe(e))
        entry.error = _describe(e)
        entry.size = 0
        entry.has_contents = False
        return
    entry.size = size
    entry.has_contents = count > 0


def scan_directory(path,
                   progress: Optional[ProgressCb] = None,
                   cancel_flag: Optional[CancelCb] = None,
                   follow_symlinks: bool = False,
                   workers: int = 1,
                   progress_every: int = PROGRESS_FILE_EVERY,
                   session: Optional[ScanSession] = None) -> List[Entry]:
    """List the immediate children of path with their sizes.

    Child directories get their full recursive size but no contents of their
    own; expanding one means calling this again on its path.
    """
    root = check_path(path)
    if not os.path.isdir(root):
        raise InvalidPathError(f"not a directory: {root}")
    if session is None:
        session = ScanSession(progress, cancel_flag, progress_every)
    if follow_symlinks:
        session.claim(os.stat(root))

    with _open_dir(root) as it:
        listing = list(it)

    out: List[Entry] = []
    pending: List[Entry] = []
    for de in listing:
        if session.cancelled():
            break
        try:
            st = _entry_stat(de, follow_symlinks)
        except OSError as e:
            logger.debug("skip %s: %s", de.path, _describe(e))
            out.append(Entry(name=de.name, path=de.path, is_dir=_is_dir(de, follow_symlinks),
                             error=_describe(e)))
            continue

        if statmod.S_ISDIR(st.st_mode):
            node = Entry(name=de.name, path=de.path, is_dir=True)
            out.append(node)
            if follow_symlinks and not session.claim(st):
                continue
            pending.append(node)
        else:
            session.visit_file(de.path)
            out.append(Entry(name=de.name, path=de.path, is_dir=False, size=int(st.st_size or 0)))

    if workers > 1 and len(pending) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(lambda e: _measure(e, session, follow_symlinks), pending))
    else:
        for node in pending:
            if session.cancelled():
                break
            _measure(node, session, follow_symlinks)

    session.finish()
    return out


def scan_root(path,
              progress: Optional[ProgressCb] = None,
              cancel_flag: Optional[CancelCb] = None,
              follow_symlinks: bool = False,
              workers: int = 1,
              progress_every: int = PROGRESS_FILE_EVERY,
              session_id: Optional[int] = None) -> ScanResult:
    """Initial scan of a user-chosen root."""
    t0 = time.time()
    root = check_path(path)
    session = ScanSession(progress, cancel_flag, progress_every, session_id)
    logger.info("scan #%d started: %s", session.session_id, root)

    contents = scan_directory(root, follow_symlinks=follow_symlinks, workers=workers, session=session)

    elapsed = time.time() - t0
    cancelled = session.cancelled()
    logger.info("scan #%d %s: %d files, %d dirs in %.2fs",
                session.session_id, "cancelled" if cancelled else "finished",
                session.files, session.dirs, elapsed)
    return ScanResult(
        root_path=root,
        contents=contents,
        session_id=session.session_id,
        files=session.files,
        dirs=session.dirs,
        elapsed_sec=elapsed,
        cancelled=cancelled,
    )
