from __future__ import annotations
import logging
import os
import shutil
import subprocess
import sys

from .errors import check_path
from .models import DeleteResult

logger = logging.getLogger(__name__)


def format_bytes(num: int) -> str:
    """Human-readable size, binary units (1 KB = 1024 B)."""
    if num < 0:
        return str(num)
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    x = float(num)
    for u in units:
        if x < 1024.0 or u == units[-1]:
            return f"{x:.2f} {u}" if u != "B" else f"{int(x)} {u}"
        x /= 1024.0
    return f"{x:.2f} PB"


def delete_path(path, is_directory: bool) -> DeleteResult:
    """Delete a file, or a directory with everything under it.

    Never reports success for a partially removed directory: rmtree stops at
    the first error and that error is returned.
    """
    ap = check_path(path)
    try:
        if is_directory:
            if os.path.islink(ap) or not os.path.isdir(ap):
                return DeleteResult(False, f"not a directory: {ap}")
            shutil.rmtree(ap)
        else:
            if os.path.isdir(ap) and not os.path.islink(ap):
                return DeleteResult(False, f"is a directory: {ap}")
            os.remove(ap)
    except OSError as e:
        logger.warning("delete failed for %s: %s", ap, e)
        return DeleteResult(False, str(e))
    logger.info("deleted %s", ap)
    return DeleteResult(True)


def reveal_in_file_manager(path: str) -> bool:
    """Open the system file manager and reveal the given path.

    Works on Windows/macOS/Linux. Returns True if an attempt was made.
    """
    if not path:
        return False
    try:
        ap = os.path.abspath(path)
        if sys.platform.startswith('win'):
            # explorer can reveal files; for folders just open
            if os.path.isdir(ap):
                os.startfile(ap)
            else:
                subprocess.Popen(['explorer', '/select,', ap])
            return True
        if sys.platform == 'darwin':
            subprocess.Popen(['open', '-R', ap])
            return True
        # linux & others
        folder = ap if os.path.isdir(ap) else os.path.dirname(ap)
        subprocess.Popen(['xdg-open', folder])
        return True
    except OSError as e:
        logger.warning("cannot reveal %s: %s", path, e)
        return False
