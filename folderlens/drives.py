from __future__ import annotations
import logging
import os
from typing import Dict, Optional

import psutil

logger = logging.getLogger(__name__)


def volume_usage(path: str) -> Optional[Dict[str, float]]:
    """Usage of the volume holding path, or None when it cannot be read."""
    try:
        u = psutil.disk_usage(os.path.abspath(path))
    except OSError as e:
        logger.debug("disk_usage failed for %s: %s", path, e)
        return None
    return {
        "total": int(u.total),
        "used": int(u.used),
        "free": int(u.free),
        "percent": float(u.percent),
    }


def share_of_volume(size: int, path: str) -> Optional[float]:
    # Percentage of the volume's used bytes that `size` accounts for.
    u = volume_usage(path)
    if not u or not u["used"]:
        return None
    return 100.0 * size / u["used"]
