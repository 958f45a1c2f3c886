"""
Game score service.

Single entry point for code that needs scores:

    tenant scope -> fetcher -> resolver (+ validator for inter-club games)
                 -> score cache

Scores are cached per game, stat fingerprint, status, perspective team and
official-score fingerprint. Score mutations also drop the game's entries
through the invalidation coordinator.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from core.context import TenantContext
from core.fetcher import UnifiedDataFetcher
from core.scoring.cache import ScoreCache
from core.scoring.resolver import ScoreResolver
from core.scoring.summary import WinRateResult, calculate_win_rate
from core.scoring.validation import (
    ScoreMismatch,
    report_discrepancy,
    summarize_team_stats,
    validate_inter_club_scores,
)
from core.tenant import TenantContextManager
from shared.games.models import Game, GameScores, GameStat, OfficialScore
from shared.logging.logger import get_logger
from shared.notifications.sink import NotificationSink
from shared.utils.hashing import stable_hash_for_records

log = get_logger("scoring.service")


OFFICIAL_FINGERPRINT_FIELDS = ("id", "team_id", "quarter", "score")


def _cache_status(
    game: Game,
    context: TenantContext,
    official_scores: Optional[List[OfficialScore]] = None,
) -> str:
    # Perspective and official entries both change the result, so both are part of the key
    team = context.current_team_id if context.current_team_id is not None else "all"
    official = stable_hash_for_records(official_scores or None, OFFICIAL_FINGERPRINT_FIELDS)
    return f"{game.status_name or 'unknown'}@{team}+official-{official}"


class GameScoreService:
    def __init__(
        self,
        *,
        tenant: TenantContextManager,
        fetcher: UnifiedDataFetcher,
        score_cache: ScoreCache,
        resolver: Optional[ScoreResolver] = None,
        notifications: Optional[NotificationSink] = None,
    ):
        self._tenant = tenant
        self._fetcher = fetcher
        self._cache = score_cache
        self._resolver = resolver or ScoreResolver()
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Synchronous resolution
    # ------------------------------------------------------------------

    def compute(
        self,
        game: Game,
        stats: Optional[List[GameStat]] = None,
        official_scores: Optional[List[OfficialScore]] = None,
        context: Optional[TenantContext] = None,
    ) -> GameScores:
        context = context or self._tenant.context
        stats = stats or []
        status = _cache_status(game, context, official_scores)

        cached = self._cache.get(game.id, stats, status)
        if cached is not None:
            return cached

        scores = self._resolver.resolve_scores(
            game,
            stats=stats,
            official_scores=official_scores,
            context=context,
        )
        self._cache.set(game.id, scores, stats, status)

        if game.is_inter_club:
            self.check_inter_club(game, stats)

        return scores

    def check_inter_club(self, game: Game, stats: Iterable[GameStat]) -> Optional[ScoreMismatch]:
        """Cross-check both clubs' entries. Returns None when either side has no rows."""
        if game.home_team_id is None or game.away_team_id is None:
            return None

        stats = list(stats)
        if not any(s.team_id == game.home_team_id for s in stats):
            return None
        if not any(s.team_id == game.away_team_id for s in stats):
            return None

        mismatch = validate_inter_club_scores(
            summarize_team_stats(game.home_team_id, stats),
            summarize_team_stats(game.away_team_id, stats),
        )
        report_discrepancy(game.id, mismatch, self._notifications)
        return mismatch

    # ------------------------------------------------------------------
    # Fetch + resolve
    # ------------------------------------------------------------------

    async def get_game_scores(self, game: Game) -> GameScores:
        stats = await self._fetcher.fetch_game_stats(game.id)
        official = await self._fetcher.fetch_official_scores(game.id)
        return self.compute(game, stats, official)

    async def get_scores_for_games(self, games: Iterable[Game]) -> Dict[int, GameScores]:
        games = list(games)
        context = self._tenant.context
        if not games:
            return {}
        if context.current_club_id is None:
            raise RuntimeError("No club selected; initialize the tenant context first")

        batch = await self._fetcher.batch_fetch_game_data(
            [g.id for g in games],
            context.current_club_id,
            context.current_team_id,
            include_rosters=False,
        )

        return {
            game.id: self.compute(
                game,
                batch.stats.get(game.id, []),
                batch.scores.get(game.id, []),
                context,
            )
            for game in games
        }

    async def win_rate(self, games: Iterable[Game]) -> WinRateResult:
        games = list(games)
        scores = await self.get_scores_for_games(games)
        return calculate_win_rate((game, scores[game.id]) for game in games)


__all__ = ["GameScoreService"]
