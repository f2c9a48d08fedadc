"""Persisted watermark for incremental (delta) runs."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from models import SyncCursor

DEFAULT_LOOKBACK = timedelta(days=1)

LOGGER = logging.getLogger(__name__)


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp the way the WordPress ``after`` filter accepts it."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def default_cursor(now: datetime | None = None) -> SyncCursor:
    """Cursor used when no state file exists yet: 24 hours before now."""
    current = now or datetime.now(UTC)
    return SyncCursor(last_sync=format_timestamp(current - DEFAULT_LOOKBACK))


def read_cursor(path: str | Path) -> SyncCursor:
    """Read the last sync time, falling back to the default on a missing or bad file."""
    state_path = Path(path)
    if not state_path.exists():
        LOGGER.info("No sync state at %s, defaulting to the last 24 hours", state_path)
        return default_cursor()

    try:
        with state_path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        last_sync = data.get("lastSync") if isinstance(data, dict) else None
        if not isinstance(last_sync, str) or not last_sync:
            raise ValueError("missing lastSync")
        datetime.fromisoformat(last_sync.replace("Z", "+00:00"))
    except (OSError, ValueError) as exc:
        LOGGER.error("Error reading last sync time from %s: %s", state_path, exc)
        return default_cursor()

    return SyncCursor(last_sync=last_sync)


def write_cursor(path: str | Path, now: datetime | None = None) -> SyncCursor:
    """Atomically replace the state file with the current timestamp."""
    cursor = SyncCursor(last_sync=format_timestamp(now or datetime.now(UTC)))
    state_path = Path(path)
    state_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{state_path.name}.", dir=state_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump({"lastSync": cursor.last_sync}, fh)
        os.replace(tmp_name, state_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    LOGGER.info("Updated last sync time to %s", cursor.last_sync)
    return cursor
