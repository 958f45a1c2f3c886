"""
Cache invalidation after successful mutations.

Each mutation category drops only the entries it can affect:

    score    -> game score key, batch score keys containing the game,
                the club's games list, cached GameScores
    game     -> game detail/stats/rosters/scores, every batch key containing
                the game, the unscoped games list, cached GameScores
    team     -> team players and team rosters

Read and navigation paths never call into this module.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from core.query_cache import QueryCache, QueryKey, club_games_key, game_key, games_key, team_key
from core.scoring.cache import ScoreCache
from shared.logging.logger import get_logger

log = get_logger("core.invalidation")

MUTATION_SCORE = "score"
MUTATION_GAME = "game"
MUTATION_TEAM = "team"

MUTATION_KINDS = (MUTATION_SCORE, MUTATION_GAME, MUTATION_TEAM)

GAME_DATA_KINDS = ("stats", "rosters", "scores")


def _batch_contains(key: QueryKey, game_id: int, kind: Optional[str] = None) -> bool:
    # ("batch", kind, club_id, team_id, game_ids)
    if len(key) != 5 or key[0] != "batch":
        return False
    if kind is not None and key[1] != kind:
        return False
    return game_id in key[4]


class CacheInvalidationCoordinator:
    def __init__(self, query_cache: QueryCache, score_cache: ScoreCache):
        self._queries = query_cache
        self._scores = score_cache

    def after_score_update(self, game_id: int, club_id: Optional[int]) -> int:
        removed = int(self._queries.invalidate(game_key(game_id, "scores")))
        removed += self._queries.invalidate_where(lambda k: _batch_contains(k, game_id, "scores"))
        if club_id is not None:
            removed += int(self._queries.invalidate(club_games_key(club_id)))
        removed += self._scores.invalidate(game_id)

        log.info(f"[game {game_id}] score update invalidated {removed} cache entr(ies)")
        return removed

    def after_game_update(self, game_id: int) -> int:
        removed = int(self._queries.invalidate(game_key(game_id)))
        for kind in GAME_DATA_KINDS:
            removed += int(self._queries.invalidate(game_key(game_id, kind)))
        removed += self._queries.invalidate_where(lambda k: _batch_contains(k, game_id))
        removed += int(self._queries.invalidate(games_key()))
        removed += self._scores.invalidate(game_id)

        log.info(f"[game {game_id}] game update invalidated {removed} cache entr(ies)")
        return removed

    def after_team_update(self, team_id: int) -> int:
        removed = int(self._queries.invalidate(team_key(team_id, "players")))
        removed += int(self._queries.invalidate(team_key(team_id, "rosters")))

        log.info(f"[team {team_id}] team update invalidated {removed} cache entr(ies)")
        return removed

    async def run_mutation(
        self,
        kind: str,
        mutation: Callable[[], Awaitable[Any]],
        *,
        game_id: Optional[int] = None,
        club_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Any:
        """
        Await ``mutation`` and invalidate for ``kind`` only if it succeeds.
        A failing mutation propagates and leaves every cache untouched.
        """
        if kind not in MUTATION_KINDS:
            raise ValueError(f"Unknown mutation kind: {kind}")
        if kind in (MUTATION_SCORE, MUTATION_GAME) and game_id is None:
            raise ValueError(f"{kind} mutations require game_id")
        if kind == MUTATION_TEAM and team_id is None:
            raise ValueError("team mutations require team_id")

        result = await mutation()

        if kind == MUTATION_SCORE:
            self.after_score_update(game_id, club_id)
        elif kind == MUTATION_GAME:
            self.after_game_update(game_id)
        else:
            self.after_team_update(team_id)

        return result


__all__ = [
    "MUTATION_GAME",
    "MUTATION_KINDS",
    "MUTATION_SCORE",
    "MUTATION_TEAM",
    "CacheInvalidationCoordinator",
]
