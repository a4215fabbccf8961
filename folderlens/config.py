"""Configuration: scan tuning read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError

PROGRESS_FILE_EVERY = 50
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ScanConfig:
    progress_every: int = PROGRESS_FILE_EVERY
    workers: int = 1
    follow_symlinks: bool = False
    log_level: str = "WARNING"


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false), got {raw!r}")


def load_config() -> ScanConfig:
    """Build a ScanConfig from FOLDERLENS_* environment variables.

    Unset variables fall back to the defaults. Malformed values fail loudly.
    """
    level = os.environ.get("FOLDERLENS_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
    if level not in LOG_LEVELS:
        raise ConfigError(f"FOLDERLENS_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {level!r}")

    return ScanConfig(
        progress_every=_int_env("FOLDERLENS_PROGRESS_EVERY", PROGRESS_FILE_EVERY),
        workers=_int_env("FOLDERLENS_WORKERS", 1),
        follow_symlinks=_bool_env("FOLDERLENS_FOLLOW_SYMLINKS", False),
        log_level=level,
    )
