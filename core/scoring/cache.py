"""
In-process score memoization.

Entries are keyed by game id, a fingerprint of the stats used to compute the
scores, and the game status. Changing any stat that feeds the fingerprint
produces a different key, so a stale read needs a hash collision; TTL expiry
and per-game invalidation reclaim memory and guard against that case.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from shared.games.models import GameScores
from shared.logging.logger import get_logger
from shared.utils.hashing import stable_hash_for_records

log = get_logger("scoring.cache")

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass
class CacheEntry:
    key: str
    value: GameScores
    timestamp: float
    fingerprint: str


class ScoreCache:
    """
    TTL cache for GameScores.

    ``clock`` returns seconds and defaults to ``time.time``; tests pass a
    manual clock.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    # --------------------------------------------------
    # Keys
    # --------------------------------------------------

    @staticmethod
    def _prefix(game_id: int) -> str:
        return f"game-{game_id}-"

    def _key(self, game_id: int, fingerprint: str, status: Optional[str]) -> str:
        return f"{self._prefix(game_id)}{fingerprint}-{status or 'unknown'}"

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self.ttl_seconds

    # --------------------------------------------------
    # Public API
    # --------------------------------------------------

    def get(
        self,
        game_id: int,
        stats: Optional[Iterable[Any]] = None,
        status: Optional[str] = None,
    ) -> Optional[GameScores]:
        fingerprint = stable_hash_for_records(stats)
        key = self._key(game_id, fingerprint, status)
        entry = self._entries.get(key)

        if entry is None:
            return None

        if not self._is_fresh(entry) or entry.fingerprint != fingerprint:
            del self._entries[key]
            log.debug(f"[game {game_id}] cache entry expired ({key})")
            return None

        return entry.value

    def set(
        self,
        game_id: int,
        scores: GameScores,
        stats: Optional[Iterable[Any]] = None,
        status: Optional[str] = None,
    ) -> None:
        fingerprint = stable_hash_for_records(stats)
        key = self._key(game_id, fingerprint, status)
        self._entries[key] = CacheEntry(
            key=key,
            value=scores,
            timestamp=self._clock(),
            fingerprint=fingerprint,
        )

    def invalidate(self, game_id: int) -> int:
        """Drop every entry for ``game_id``. Returns the number removed."""
        prefix = self._prefix(game_id)
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            log.debug(f"[game {game_id}] invalidated {len(doomed)} cached score(s)")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        doomed = [key for key, entry in self._entries.items() if not self._is_fresh(entry)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        entries: List[Dict[str, Any]] = [
            {"key": entry.key, "timestamp": entry.timestamp, "age": now - entry.timestamp}
            for entry in self._entries.values()
        ]
        return {"size": len(entries), "ttl_seconds": self.ttl_seconds, "entries": entries}


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CacheEntry",
    "ScoreCache",
]
