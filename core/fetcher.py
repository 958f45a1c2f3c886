"""
Unified per-game data fetcher.

Fetches stats, rosters and official scores for a set of games in one
round trip per data kind, scoped to a club (and optionally a team):

- game ids are normalized, sorted and de-duplicated
- identical concurrent requests share a single in-flight task
- a failed batch falls back to per-game requests for that kind
- a failed per-game request yields an empty list for that game only

Every result is written into the QueryCache under its batch key. Unscoped
batches also fill the per-game keys read by the single-game helpers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from core.errors import ApiError, MalformedResponse
from core.query_cache import QueryCache, batch_key, game_key
from services.api.client import ApiClient
from shared.games.models import GameStat, OfficialScore, parse_official_scores, parse_stats
from shared.logging.logger import get_logger

log = get_logger("core.fetcher")

KIND_STATS = "stats"
KIND_ROSTERS = "rosters"
KIND_SCORES = "scores"

FetchKey = Tuple[int, Optional[int], Tuple[int, ...], bool, bool, bool]


@dataclass
class GameDataBatch:
    stats: Dict[int, List[GameStat]] = field(default_factory=dict)
    rosters: Dict[int, List[Dict[str, Any]]] = field(default_factory=dict)
    scores: Dict[int, List[OfficialScore]] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return {
            KIND_STATS: {gid: [s.to_document() for s in rows] for gid, rows in self.stats.items()},
            KIND_ROSTERS: {gid: list(rows) for gid, rows in self.rosters.items()},
            KIND_SCORES: {gid: [s.to_document() for s in rows] for gid, rows in self.scores.items()},
        }


def normalize_game_ids(game_ids: Any) -> List[int]:
    """
    Accept a list of ids or a comma-separated string. Non-numeric and
    non-positive entries are dropped; the result is sorted and unique.
    """
    if game_ids is None:
        return []
    if isinstance(game_ids, str):
        game_ids = game_ids.split(",")

    normalized: Set[int] = set()
    for raw in game_ids:
        if isinstance(raw, bool) or raw is None:
            continue
        try:
            value = int(raw) if isinstance(raw, (int, float)) else int(str(raw).strip())
        except (TypeError, ValueError, OverflowError):
            continue
        if value > 0:
            normalized.add(value)
    return sorted(normalized)


class UnifiedDataFetcher:
    def __init__(self, api_client: ApiClient, query_cache: QueryCache):
        self._api = api_client
        self._cache = query_cache
        self._in_flight: Dict[FetchKey, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------
    # Batch fetch
    # ------------------------------------------------------------------

    async def batch_fetch_game_data(
        self,
        game_ids: Iterable[Any],
        club_id: int,
        team_id: Optional[int] = None,
        *,
        include_stats: bool = True,
        include_rosters: bool = True,
        include_scores: bool = True,
    ) -> GameDataBatch:
        ids = normalize_game_ids(game_ids)
        if not ids:
            return GameDataBatch()

        key: FetchKey = (club_id, team_id, tuple(ids), include_stats, include_rosters, include_scores)

        task = self._in_flight.get(key)
        if task is not None:
            log.debug(f"Joining in-flight batch for club {club_id}, games {ids}")
            return await asyncio.shield(task)

        task = asyncio.create_task(
            self._execute(ids, club_id, team_id, include_stats, include_rosters, include_scores)
        )
        self._in_flight[key] = task
        task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))

        return await asyncio.shield(task)

    async def _execute(
        self,
        ids: List[int],
        club_id: int,
        team_id: Optional[int],
        include_stats: bool,
        include_rosters: bool,
        include_scores: bool,
    ) -> GameDataBatch:
        batch = GameDataBatch()

        if include_stats:
            raw = await self._fetch_kind(KIND_STATS, ids, club_id, team_id)
            batch.stats = {gid: parse_stats(rows) for gid, rows in raw.items()}
            self._store(KIND_STATS, batch.stats, club_id, team_id, ids)

        if include_rosters:
            batch.rosters = await self._fetch_kind(KIND_ROSTERS, ids, club_id, team_id)
            self._store(KIND_ROSTERS, batch.rosters, club_id, team_id, ids)

        if include_scores:
            raw = await self._fetch_kind(KIND_SCORES, ids, club_id, team_id)
            batch.scores = {gid: parse_official_scores(rows) for gid, rows in raw.items()}
            self._store(KIND_SCORES, batch.scores, club_id, team_id, ids)

        return batch

    async def _fetch_kind(
        self,
        kind: str,
        ids: List[int],
        club_id: int,
        team_id: Optional[int],
    ) -> Dict[int, List[Any]]:
        body: Dict[str, Any] = {"gameIds": ids}
        if team_id is not None:
            body["teamId"] = team_id

        try:
            response = await self._api.post(f"/clubs/{club_id}/games/{kind}/batch", body)
        except ApiError as e:
            log.warning(f"Batch {kind} fetch failed for club {club_id} ({e}); falling back to per-game requests")
            return await self._fetch_individually(kind, ids)

        return self._by_game(kind, response, ids)

    async def _fetch_individually(self, kind: str, ids: List[int]) -> Dict[int, List[Any]]:
        results = await asyncio.gather(*(self._fetch_one(kind, gid) for gid in ids))
        return dict(zip(ids, results))

    async def _fetch_one(self, kind: str, game_id: int) -> List[Any]:
        try:
            return await self._get_rows(kind, game_id)
        except (ApiError, MalformedResponse) as e:
            log.warning(f"[game {game_id}] {kind} fetch failed: {e}")
            return []

    async def _get_rows(self, kind: str, game_id: int) -> List[Any]:
        rows = await self._api.get(f"/games/{game_id}/{kind}")
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise MalformedResponse(f"Expected a list of {kind} for game {game_id}, got {type(rows).__name__}")
        return rows

    @staticmethod
    def _by_game(kind: str, response: Any, ids: List[int]) -> Dict[int, List[Any]]:
        if response is None:
            response = {}
        if not isinstance(response, dict):
            raise MalformedResponse(f"Batch {kind} response is {type(response).__name__}, expected an object")

        by_game: Dict[int, List[Any]] = {gid: [] for gid in ids}
        for raw_id, rows in response.items():
            try:
                gid = int(raw_id)
            except (TypeError, ValueError):
                log.warning(f"Ignoring batch {kind} entry with non-numeric game id {raw_id!r}")
                continue
            if gid in by_game:
                by_game[gid] = list(rows or [])
        return by_game

    def _store(
        self,
        kind: str,
        by_game: Dict[int, List[Any]],
        club_id: int,
        team_id: Optional[int],
        ids: List[int],
    ) -> None:
        # Team-scoped rows are a filtered view; per-game keys hold full records only
        if team_id is None:
            for gid, rows in by_game.items():
                self._cache.set(game_key(gid, kind), rows)
        self._cache.set(batch_key(kind, club_id, team_id, ids), by_game)

    # ------------------------------------------------------------------
    # Prefetch
    # ------------------------------------------------------------------

    def prefetch_related_data(
        self,
        game_ids: Iterable[Any],
        club_id: int,
        team_id: Optional[int] = None,
    ) -> asyncio.Task:
        """Warm the query cache in the background; failures are logged only."""
        task = asyncio.create_task(self.batch_fetch_game_data(game_ids, club_id, team_id))
        self._background.add(task)
        task.add_done_callback(self._on_prefetch_done)
        return task

    def _on_prefetch_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.warning(f"Background prefetch failed: {error}")

    # ------------------------------------------------------------------
    # Single-game helpers
    # ------------------------------------------------------------------

    async def _fetch_cached(self, kind: str, game_id: int, parse) -> List[Any]:
        key = game_key(game_id, kind)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            rows = parse(await self._get_rows(kind, game_id))
        except ApiError as e:
            # Not cached, so the next read retries
            log.warning(f"[game {game_id}] {kind} fetch failed: {e}")
            return []

        self._cache.set(key, rows)
        return rows

    async def fetch_game_stats(self, game_id: int) -> List[GameStat]:
        return await self._fetch_cached(KIND_STATS, game_id, parse_stats)

    async def fetch_official_scores(self, game_id: int) -> List[OfficialScore]:
        return await self._fetch_cached(KIND_SCORES, game_id, parse_official_scores)


__all__ = [
    "KIND_ROSTERS",
    "KIND_SCORES",
    "KIND_STATS",
    "GameDataBatch",
    "UnifiedDataFetcher",
    "normalize_game_ids",
]
