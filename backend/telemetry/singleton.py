from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

import duckdb

from settings.loader import get_config, resolve_repo_path
from telemetry.store import TelemetryStore

logger = logging.getLogger(__name__)

_OFF_VALUES = {"0", "false", "no", "off"}

_STORE: TelemetryStore | None = None
_STORE_LOCK = threading.RLock()


def telemetry_enabled() -> bool:
    # Env wins over the config file.
    v = os.getenv("ROUTEGUIDE_TELEMETRY")
    if v is not None:
        return v.strip().lower() not in _OFF_VALUES
    return get_config().telemetry.enabled


def telemetry_path() -> Path:
    return resolve_repo_path(
        os.getenv("ROUTEGUIDE_TELEMETRY_PATH") or get_config().telemetry.path
    )


def _open(path: Path) -> TelemetryStore:
    path.parent.mkdir(parents=True, exist_ok=True)
    store = TelemetryStore(path=path, conn=duckdb.connect(str(path)))
    store.ensure_schema()
    store.start()
    logger.info("telemetry store opened at %s", path)
    return store


def get_store() -> TelemetryStore | None:
    """
    The process-wide call statistics store, or None when telemetry is off.

    Reopens on a new file when the configured path changes.
    """
    global _STORE
    if not telemetry_enabled():
        return None
    path = telemetry_path()
    with _STORE_LOCK:
        if _STORE is not None and _STORE.path.resolve() != path.resolve():
            _STORE.stop(timeout_s=2.0)
            _STORE.conn.close()
            _STORE = None
        if _STORE is None:
            _STORE = _open(path)
        return _STORE


def reset_store() -> None:
    """Close the store and delete its database file."""
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            telemetry_path().unlink(missing_ok=True)
            return
        _STORE.reset()
        _STORE = None
