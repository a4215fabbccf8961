from __future__ import annotations
import logging
from typing import List, Optional, Set

from PySide6.QtCore import QObject, QThread, Signal

from .config import ScanConfig
from .errors import FolderLensError, TreeLookupError, check_path
from .models import DeleteResult, Entry, ProgressEvent, ScanResult
from .scanner import next_session_id, scan_directory, scan_root
from .tree import TreeStore
from .utils import delete_path

logger = logging.getLogger(__name__)


# -------------------- Cancel flag --------------------
class CancelFlag:
    def __init__(self):
        self._cancel = False

    def cancel(self):
        self._cancel = True

    def __call__(self):
        return self._cancel


# -------------------- Worker threads --------------------
class ScanThread(QThread):
    progress = Signal(int, object)  # session_id, ProgressEvent
    done = Signal(int, object)      # session_id, ScanResult
    error = Signal(int, str)

    def __init__(self, path: str, session_id: int, config: Optional[ScanConfig] = None):
        super().__init__()
        self.path = path
        self.session_id = session_id
        self.config = config or ScanConfig()
        self.cancel_flag = CancelFlag()

    def run(self):
        try:
            def prog(ev: ProgressEvent):
                self.progress.emit(self.session_id, ev)
            res = scan_root(self.path, progress=prog, cancel_flag=self.cancel_flag,
                            follow_symlinks=self.config.follow_symlinks,
                            workers=self.config.workers,
                            progress_every=self.config.progress_every,
                            session_id=self.session_id)
            self.done.emit(self.session_id, res)
        except (FolderLensError, OSError) as e:
            self.error.emit(self.session_id, str(e))
        except Exception as e:
            logger.exception("scan #%d crashed", self.session_id)
            self.error.emit(self.session_id, str(e))


class ExpandThread(QThread):
    progress = Signal(int, object)   # session_id, ProgressEvent
    done = Signal(int, str, object)  # session_id, path, List[Entry]
    error = Signal(int, str, str)    # session_id, path, message

    def __init__(self, path: str, session_id: int, config: Optional[ScanConfig] = None,
                 with_progress: bool = False):
        super().__init__()
        self.path = path
        self.session_id = session_id
        self.config = config or ScanConfig()
        self.with_progress = with_progress
        self.cancel_flag = CancelFlag()

    def run(self):
        try:
            prog = None
            if self.with_progress:
                def prog(ev: ProgressEvent):
                    self.progress.emit(self.session_id, ev)
            entries = scan_directory(self.path, progress=prog, cancel_flag=self.cancel_flag,
                                     follow_symlinks=self.config.follow_symlinks,
                                     workers=self.config.workers,
                                     progress_every=self.config.progress_every)
            self.done.emit(self.session_id, self.path, entries)
        except (FolderLensError, OSError) as e:
            self.error.emit(self.session_id, self.path, str(e))
        except Exception as e:
            logger.exception("expand of %s crashed", self.path)
            self.error.emit(self.session_id, self.path, str(e))


class DeleteThread(QThread):
    done = Signal(int, str, object)  # session_id, path, DeleteResult

    def __init__(self, path: str, is_directory: bool, session_id: int = 0):
        super().__init__()
        self.path = path
        self.is_directory = is_directory
        self.session_id = session_id

    def run(self):
        try:
            res = delete_path(self.path, self.is_directory)
        except FolderLensError as e:
            res = DeleteResult(False, str(e))
        self.done.emit(self.session_id, self.path, res)


# -------------------- Controller --------------------
class ScanController(QObject):
    """Owns the tree for the current root and feeds worker results into it.

    Results and progress tagged with an older session id are dropped, so a
    superseded scan can never overwrite the tree of the current one.
    """

    progress = Signal(object)        # ProgressEvent
    tree_changed = Signal(object)    # Entry or None
    scan_finished = Signal(object)   # ScanResult
    failed = Signal(str)

    def __init__(self, config: Optional[ScanConfig] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.config = config or ScanConfig()
        self.store = TreeStore()
        self.session_id = 0
        self._scan_thread: Optional[ScanThread] = None
        self._threads: Set[QThread] = set()

    def _track(self, t: QThread) -> None:
        # keep a reference until the thread is done, or Qt deletes it mid-run
        self._threads = {x for x in self._threads if not x.isFinished()}
        self._threads.add(t)
        t.start()

    def start_scan(self, path: str) -> int:
        root = check_path(path)
        self.cancel()
        self.session_id = next_session_id()
        self.store.clear()
        self.tree_changed.emit(None)

        t = ScanThread(root, self.session_id, self.config)
        t.progress.connect(self._on_progress)
        t.done.connect(self._on_scan_done)
        t.error.connect(self._on_scan_error)
        self._scan_thread = t
        self._track(t)
        return self.session_id

    def cancel(self) -> None:
        if self._scan_thread is not None:
            self._scan_thread.cancel_flag.cancel()
            self._scan_thread = None

    def expand(self, path: str, with_progress: bool = False) -> None:
        node = self.store.find(path)
        if node is None or not node.is_dir or not node.has_contents:
            raise TreeLookupError(f"cannot expand {path}")
        t = ExpandThread(node.path, self.session_id, self.config, with_progress)
        t.progress.connect(self._on_progress)
        t.done.connect(self._on_expand_done)
        t.error.connect(self._on_expand_error)
        self._track(t)

    def delete(self, path: str, is_directory: bool) -> None:
        t = DeleteThread(check_path(path), is_directory, self.session_id)
        t.done.connect(self._on_delete_done)
        self._track(t)

    def wait(self, msecs: int = 30000) -> bool:
        return all(t.wait(msecs) for t in list(self._threads))

    # --- slots ---
    def _is_stale(self, session_id: int) -> bool:
        if session_id != self.session_id:
            logger.debug("dropping event from stale scan #%d (current #%d)", session_id, self.session_id)
            return True
        return False

    def _on_progress(self, session_id: int, ev: ProgressEvent):
        if not self._is_stale(session_id):
            self.progress.emit(ev)

    def _on_scan_done(self, session_id: int, res: ScanResult):
        if self._is_stale(session_id) or res.cancelled:
            return
        self._scan_thread = None
        root = self.store.reset(res)
        self.tree_changed.emit(root)
        self.scan_finished.emit(res)

    def _on_scan_error(self, session_id: int, msg: str):
        if self._is_stale(session_id):
            return
        self._scan_thread = None
        self.failed.emit(msg)

    def _on_expand_done(self, session_id: int, path: str, entries: List[Entry]):
        if self._is_stale(session_id):
            return
        try:
            root = self.store.attach(path, entries)
        except TreeLookupError as e:
            self.failed.emit(str(e))
            return
        self.tree_changed.emit(root)

    def _on_expand_error(self, session_id: int, path: str, msg: str):
        if not self._is_stale(session_id):
            self.failed.emit(f"Error scanning {path}: {msg}")

    def _on_delete_done(self, session_id: int, path: str, res: DeleteResult):
        if not res.success:
            self.failed.emit(f"Error deleting item: {res.error}")
            return
        if self._is_stale(session_id):
            return
        if self.store.is_root(path):
            self.store.clear()
            self.tree_changed.emit(None)
            return
        try:
            root = self.store.remove(path)
        except TreeLookupError as e:
            self.failed.emit(str(e))
            return
        self.tree_changed.emit(root)
