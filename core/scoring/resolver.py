"""
Game score resolution.

Scores can come from several places that may disagree. The resolver applies
a fixed priority and returns the first source that has data:

    1. official scores entered per team and quarter
    2. a status-fixed final score (administrative override)
    3. legacy forfeit status strings (forfeit-win / forfeit-loss)
    4. inter-club stat aggregation (home rows first, away rows swapped)
    5. stat aggregation for the current team (or all rows)

Every result has exactly four quarters and its totals/result derive from
them (see GameScores).
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from core.context import TenantContext
from shared.games.models import (
    QUARTERS,
    STATUS_FORFEIT_LOSS,
    STATUS_FORFEIT_WIN,
    FixedScore,
    Game,
    GameScores,
    GameStat,
    OfficialScore,
)
from shared.logging.logger import get_logger

log = get_logger("scoring.resolver")

FORFEIT_GOALS = 10

SOURCE_OFFICIAL = "official"
SOURCE_STATUS = "status"
SOURCE_FORFEIT = "forfeit"
SOURCE_INTER_CLUB = "inter-club-stats"
SOURCE_STATS = "stats"

QuarterMap = Dict[int, Tuple[int, int]]


def _sum_goals(rows: Iterable[GameStat]) -> Tuple[int, int]:
    goals_for = 0
    goals_against = 0
    for row in rows:
        goals_for += row.goals_for or 0
        goals_against += row.goals_against or 0
    return goals_for, goals_against


def _quarter_one_only(team: int, opponent: int) -> QuarterMap:
    return {1: (team, opponent)}


class ScoreResolver:
    """Stateless; one instance can be shared across the runtime."""

    def resolve_scores(
        self,
        game: Game,
        stats: Optional[List[GameStat]] = None,
        official_scores: Optional[List[OfficialScore]] = None,
        status_fixed_score: Optional[FixedScore] = None,
        context: Optional[TenantContext] = None,
    ) -> GameScores:
        scores = self._resolve(game, stats, official_scores, status_fixed_score, context or TenantContext())
        log.debug(
            f"[game {game.id}] {scores.total_team_score}-{scores.total_opponent_score} "
            f"({scores.result}, source={scores.source})"
        )
        return scores

    def _resolve(
        self,
        game: Game,
        stats: Optional[List[GameStat]],
        official_scores: Optional[List[OfficialScore]],
        status_fixed_score: Optional[FixedScore],
        context: TenantContext,
    ) -> GameScores:
        stats = [s for s in (stats or []) if s.quarter in QUARTERS]

        # -------------------------------
        # 1. OFFICIAL SCORES
        # -------------------------------
        official = [
            s for s in (official_scores or [])
            if not s.game_id or s.game_id == game.id
        ]
        if official:
            return GameScores.from_quarters(
                self._from_official(game, official, context),
                source=SOURCE_OFFICIAL,
            )

        # -------------------------------
        # 2. STATUS-FIXED SCORE
        # -------------------------------
        fixed = status_fixed_score or self._fixed_from_game(game, context)
        if fixed is not None:
            return GameScores.from_quarters(
                _quarter_one_only(fixed.team_score, fixed.opponent_score),
                source=SOURCE_STATUS,
            )

        # -------------------------------
        # 3. LEGACY FORFEIT STATUS
        # -------------------------------
        if game.status_name == STATUS_FORFEIT_WIN:
            return GameScores.from_quarters(_quarter_one_only(FORFEIT_GOALS, 0), source=SOURCE_FORFEIT)
        if game.status_name == STATUS_FORFEIT_LOSS:
            return GameScores.from_quarters(_quarter_one_only(0, FORFEIT_GOALS), source=SOURCE_FORFEIT)

        # -------------------------------
        # 4. INTER-CLUB STATS
        # -------------------------------
        if (
            game.is_inter_club
            and game.home_team_id is not None
            and game.away_team_id is not None
            and context.current_team_id is not None
        ):
            return GameScores.from_quarters(
                self._from_inter_club_stats(game, stats, context),
                source=SOURCE_INTER_CLUB,
            )

        # -------------------------------
        # 5. DEFAULT STATS
        # -------------------------------
        return GameScores.from_quarters(
            self._from_stats(stats, context.current_team_id),
            source=SOURCE_STATS,
        )

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @staticmethod
    def _perspective(game: Game, context: TenantContext) -> Tuple[Optional[int], Optional[int]]:
        """Return (team_id, opponent_id) for the active perspective."""
        if context.team_is_away(game.away_team_id):
            return game.away_team_id, game.home_team_id
        return game.home_team_id, game.away_team_id

    def _from_official(
        self,
        game: Game,
        official: List[OfficialScore],
        context: TenantContext,
    ) -> QuarterMap:
        by_quarter: Dict[int, Dict[int, int]] = {}
        for row in official:
            by_quarter.setdefault(row.quarter, {})[row.team_id] = row.score

        team_id, opponent_id = self._perspective(game, context)
        quarters: QuarterMap = {}
        for quarter in QUARTERS:
            scores = by_quarter.get(quarter, {})
            quarters[quarter] = (
                scores.get(team_id, 0) if team_id is not None else 0,
                scores.get(opponent_id, 0) if opponent_id is not None else 0,
            )
        return quarters

    def _fixed_from_game(self, game: Game, context: TenantContext) -> Optional[FixedScore]:
        if not game.has_status_score:
            return None
        home, away = game.status_team_goals, game.status_opponent_goals
        if context.team_is_away(game.away_team_id):
            return FixedScore(team_score=away, opponent_score=home)
        return FixedScore(team_score=home, opponent_score=away)

    def _from_inter_club_stats(
        self,
        game: Game,
        stats: List[GameStat],
        context: TenantContext,
    ) -> QuarterMap:
        team_is_away = context.team_is_away(game.away_team_id)
        quarters: QuarterMap = {}

        for quarter in QUARTERS:
            in_quarter = [s for s in stats if s.quarter == quarter]
            home_rows = [s for s in in_quarter if s.team_id == game.home_team_id]

            if home_rows:
                home, away = _sum_goals(home_rows)
            else:
                away_rows = [s for s in in_quarter if s.team_id == game.away_team_id]
                away, home = _sum_goals(away_rows)

            quarters[quarter] = (away, home) if team_is_away else (home, away)

        return quarters

    def _from_stats(self, stats: List[GameStat], team_id: Optional[int]) -> QuarterMap:
        if team_id is not None:
            # Rows without a team id predate team-based stats and belong to the entering team
            stats = [s for s in stats if s.team_id is None or s.team_id == team_id]

        quarters: QuarterMap = {}
        for quarter in QUARTERS:
            quarters[quarter] = _sum_goals(s for s in stats if s.quarter == quarter)
        return quarters


__all__ = [
    "FORFEIT_GOALS",
    "SOURCE_FORFEIT",
    "SOURCE_INTER_CLUB",
    "SOURCE_OFFICIAL",
    "SOURCE_STATS",
    "SOURCE_STATUS",
    "ScoreResolver",
]
