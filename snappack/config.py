"""Environment-driven configuration, process-wide record flag and logging."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import os
from pathlib import Path
import tempfile
from typing import Iterator

ARTIFACTS_ENV_VAR = "SNAPSHOT_ARTIFACTS"
RECORD_ENV_VAR = "SNAPSHOT_RECORD"
DIFF_TOOL_ENV_VAR = "SNAPSHOT_DIFF_TOOL"
LOG_LEVEL_ENV_VAR = "SNAPSHOT_LOG_LEVEL"

SNAPSHOTS_DIRNAME = "__Snapshots__"
DEFAULT_TIMEOUT_SECONDS = 5.0

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_GLOBAL_RECORD: bool | None = None


def is_global_record() -> bool:
    """Resolve the process-wide record flag (programmatic override, then env)."""
    if _GLOBAL_RECORD is not None:
        return _GLOBAL_RECORD
    return os.getenv(RECORD_ENV_VAR, "").strip().lower() in _TRUTHY


def set_global_record(value: bool | None) -> None:
    """Force recording for every assertion; ``None`` falls back to the environment."""
    global _GLOBAL_RECORD
    _GLOBAL_RECORD = value


@contextmanager
def use_global_record(value: bool = True) -> Iterator[None]:
    global _GLOBAL_RECORD
    previous = _GLOBAL_RECORD
    _GLOBAL_RECORD = value
    try:
        yield
    finally:
        _GLOBAL_RECORD = previous


def resolve_artifacts_root() -> Path:
    configured = os.getenv(ARTIFACTS_ENV_VAR, "").strip()
    return Path(configured) if configured else Path(tempfile.gettempdir())


def default_diff_tool() -> str | None:
    configured = os.getenv(DIFF_TOOL_ENV_VAR, "").strip()
    return configured or None


def get_logger(name: str = "snappack") -> logging.Logger:
    """Return a process-global logger configured from ``SNAPSHOT_LOG_LEVEL``."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    level_name = os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").strip().upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))
    return logger
