"""
Inter-club score cross-checks.

Both clubs in an inter-club game enter their own stats. Home "for" should
equal away "against" and vice versa; anything else is a discrepancy for a
human to review. Nothing here mutates stored data, and the resolver never
adopts a reconciled score on its own.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from shared.games.models import GameStat
from shared.logging.logger import get_logger
from shared.notifications.sink import NotificationSink

log = get_logger("scoring.validation")

RECONCILE_STRATEGIES = ("average", "home-priority", "away-priority", "higher", "lower")


@dataclass(frozen=True)
class TeamStats:
    goals_for: int
    goals_against: int
    team_id: Optional[int] = None

    @classmethod
    def coerce(cls, value: Union["TeamStats", Mapping[str, Any]]) -> "TeamStats":
        if isinstance(value, TeamStats):
            return value
        return cls(
            goals_for=int(value.get("goalsFor", value.get("goals_for", 0)) or 0),
            goals_against=int(value.get("goalsAgainst", value.get("goals_against", 0)) or 0),
            team_id=value.get("teamId", value.get("team_id")),
        )


@dataclass(frozen=True)
class ScoreMismatch:
    has_discrepancy: bool
    home_team_discrepancy: int
    away_team_discrepancy: int
    message: Optional[str] = None


@dataclass(frozen=True)
class ReconciledScore:
    home_score: int
    away_score: int
    method: str


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize_team_stats(team_id: int, stats: Iterable[GameStat]) -> TeamStats:
    """Fold one team's stat rows into a goals for/against total."""
    goals_for = 0
    goals_against = 0
    for row in stats:
        if row.team_id != team_id:
            continue
        goals_for += row.goals_for or 0
        goals_against += row.goals_against or 0
    return TeamStats(goals_for=goals_for, goals_against=goals_against, team_id=team_id)


def validate_inter_club_scores(home_stats, away_stats) -> ScoreMismatch:
    home = TeamStats.coerce(home_stats)
    away = TeamStats.coerce(away_stats)

    home_discrepancy = home.goals_for - away.goals_against
    away_discrepancy = away.goals_for - home.goals_against

    if home_discrepancy == 0 and away_discrepancy == 0:
        return ScoreMismatch(
            has_discrepancy=False,
            home_team_discrepancy=0,
            away_team_discrepancy=0,
        )

    message = (
        "Score mismatch detected: "
        f"home team recorded {home.goals_for} goals but away team recorded {away.goals_against} against "
        f"(discrepancy {home_discrepancy}); "
        f"away team recorded {away.goals_for} goals but home team recorded {home.goals_against} against "
        f"(discrepancy {away_discrepancy})"
    )
    return ScoreMismatch(
        has_discrepancy=True,
        home_team_discrepancy=home_discrepancy,
        away_team_discrepancy=away_discrepancy,
        message=message,
    )


def get_reconciled_score(home_stats, away_stats, strategy: str = "average") -> ReconciledScore:
    """
    Best-effort home/away score when the two clubs disagree.

    The default ``average`` strategy rounds (for + opponent's against) / 2
    half-up for each side.
    """
    home = TeamStats.coerce(home_stats)
    away = TeamStats.coerce(away_stats)

    if not validate_inter_club_scores(home, away).has_discrepancy:
        return ReconciledScore(home_score=home.goals_for, away_score=away.goals_for, method="exact-match")

    if strategy == "average":
        return ReconciledScore(
            home_score=_round_half_up((home.goals_for + away.goals_against) / 2),
            away_score=_round_half_up((away.goals_for + home.goals_against) / 2),
            method="averaged",
        )
    if strategy == "home-priority":
        return ReconciledScore(home.goals_for, home.goals_against, "home-team-priority")
    if strategy == "away-priority":
        return ReconciledScore(away.goals_against, away.goals_for, "away-team-priority")
    if strategy == "higher":
        return ReconciledScore(
            max(home.goals_for, away.goals_against),
            max(away.goals_for, home.goals_against),
            "higher-value",
        )
    if strategy == "lower":
        return ReconciledScore(
            min(home.goals_for, away.goals_against),
            min(away.goals_for, home.goals_against),
            "lower-value",
        )

    raise ValueError(f"Unknown reconcile strategy: {strategy}")


def report_discrepancy(
    game_id: int,
    mismatch: ScoreMismatch,
    sink: Optional[NotificationSink],
) -> bool:
    """Surface a discrepancy as a warning. Returns True when one was reported."""
    if not mismatch.has_discrepancy:
        return False

    log.warning(f"[game {game_id}] {mismatch.message}")
    if sink is not None:
        sink.notify("warning", f"Inter-club score mismatch (game {game_id})", mismatch.message or "")
    return True


__all__ = [
    "RECONCILE_STRATEGIES",
    "ReconciledScore",
    "ScoreMismatch",
    "TeamStats",
    "get_reconciled_score",
    "report_discrepancy",
    "summarize_team_stats",
    "validate_inter_club_scores",
]
