"""
Keyed store of fetched records.

Keys are tuples whose first element names the record family:

    ("game", game_id)
    ("game", game_id, "stats" | "rosters" | "scores")
    ("batch", kind, club_id, team_id, (game_id, ...))
    ("club", club_id, "games")
    ("games",)
    ("team", team_id, "players" | "rosters")

The fetcher writes entries, rendering code reads them and the invalidation
coordinator removes them. Invalidated keys are simply absent; the next read
refetches.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from shared.logging.logger import get_logger

log = get_logger("core.query_cache")

QueryKey = Tuple[Hashable, ...]


def game_key(game_id: int, kind: Optional[str] = None) -> QueryKey:
    return ("game", game_id) if kind is None else ("game", game_id, kind)


def batch_key(kind: str, club_id: int, team_id: Optional[int], game_ids: Iterable[int]) -> QueryKey:
    return ("batch", kind, club_id, team_id, tuple(game_ids))


def club_games_key(club_id: int) -> QueryKey:
    return ("club", club_id, "games")


def games_key() -> QueryKey:
    return ("games",)


def team_key(team_id: int, kind: str) -> QueryKey:
    return ("team", team_id, kind)


class QueryCache:
    def __init__(self, *, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[QueryKey, Any] = {}
        self._updated_at: Dict[QueryKey, float] = {}

    def get(self, key: QueryKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = value
        self._updated_at[key] = self._clock()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[QueryKey]:
        return list(self._entries)

    def updated_at(self, key: QueryKey) -> Optional[float]:
        return self._updated_at.get(key)

    def invalidate(self, key: QueryKey) -> bool:
        if key not in self._entries:
            return False
        del self._entries[key]
        self._updated_at.pop(key, None)
        return True

    def invalidate_where(self, predicate: Callable[[QueryKey], bool]) -> int:
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            self._entries.pop(key, None)
            self._updated_at.pop(key, None)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        self._updated_at.clear()


__all__ = [
    "QueryCache",
    "QueryKey",
    "batch_key",
    "club_games_key",
    "game_key",
    "games_key",
    "team_key",
]
