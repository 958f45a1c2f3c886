"""
Durable tenant selection store.

Persists the active club/team selection so it survives process restarts
(the page-reload equivalent for the client runtime). Values are written as a
small JSON document using an atomic temp-file replace.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from shared.logging.logger import get_logger

log = get_logger("shared.tenant_store")

CLUB_KEY = "current_club_id"
TEAM_KEY = "current_team_id"


class TenantStore:
    """
    Key/value store for ``current_club_id`` and ``current_team_id``.

    Reads tolerate a missing or corrupt file (treated as empty). Writes are
    skipped when the stored value is already identical, which keeps repeated
    persistence of the same selection idempotent.
    """

    DEFAULT_BASE_DIR = Path("shared/state")
    FILENAME = "tenant.json"

    def __init__(self, base_dir: Path | str | None = None):
        self._base_dir = Path(base_dir) if base_dir else self.DEFAULT_BASE_DIR
        self._path = self._base_dir / self.FILENAME
        self._lock = Lock()
        self.write_count = 0

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Internal load / save
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
            log.warning(f"Tenant state at {self._path} is not an object; ignoring")
        except Exception as e:
            log.warning(f"Failed to load tenant state, returning defaults: {e}")
        return {}

    def _write_atomic(self, payload: Dict[str, Any]) -> None:
        serialized = json.dumps(payload, indent=2)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w", dir=self._path.parent, delete=False, encoding="utf-8"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        try:
            temp_path.replace(self._path)
        except OSError:
            try:
                temp_path.unlink()
            except OSError as e:
                log.warning(f"Could not remove temp file {temp_path}: {e}")
            raise
        self.write_count += 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_int(self, key: str) -> Optional[int]:
        with self._lock:
            value = self._load().get(key)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            log.warning(f"Stored {key}={value!r} is not an integer; ignoring")
            return None

    def set(self, key: str, value: Optional[int]) -> None:
        """Store ``value`` under ``key``; ``None`` removes the key."""
        with self._lock:
            state = self._load()
            if value is None:
                if key not in state:
                    return
                state.pop(key)
            else:
                if state.get(key) == value:
                    return
                state[key] = value
            self._write_atomic(state)

    def remove(self, key: str) -> None:
        self.set(key, None)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._load())


__all__ = [
    "CLUB_KEY",
    "TEAM_KEY",
    "TenantStore",
]
