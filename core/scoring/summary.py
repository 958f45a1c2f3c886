"""Win-rate aggregation and score display helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from shared.games.models import QUARTERS, RESULT_DRAW, RESULT_LOSS, RESULT_WIN, Game, GameScores

_RESULT_LABELS = {
    RESULT_WIN: "Win",
    RESULT_LOSS: "Loss",
    RESULT_DRAW: "Draw",
}


@dataclass(frozen=True)
class WinRateResult:
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def total_games(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self) -> float:
        """Percentage of counted games won; 0.0 when nothing was counted."""
        total = self.total_games
        return (self.wins / total) * 100 if total else 0.0

    def to_document(self) -> Dict[str, float]:
        return {
            "wins": self.wins,
            "losses": self.losses,
            "draws": self.draws,
            "totalGames": self.total_games,
            "winRate": self.win_rate,
        }


def counts_toward_record(game: Game) -> bool:
    return game.status_is_completed and not game.is_bye


def calculate_win_rate(results: Iterable[Tuple[Game, GameScores]]) -> WinRateResult:
    """
    Tally resolved results. Byes and games that are not completed are
    skipped. Each GameScores must already be in the perspective of the team
    whose record is being built.
    """
    wins = losses = draws = 0
    for game, scores in results:
        if not counts_toward_record(game):
            continue
        if scores.result == RESULT_WIN:
            wins += 1
        elif scores.result == RESULT_LOSS:
            losses += 1
        else:
            draws += 1
    return WinRateResult(wins=wins, losses=losses, draws=draws)


def result_label(scores: GameScores) -> str:
    return _RESULT_LABELS[scores.result]


def format_score(scores: GameScores) -> str:
    return f"{scores.total_team_score}-{scores.total_opponent_score}"


def format_quarter_breakdown(scores: GameScores) -> str:
    return " | ".join(
        f"Q{q.quarter} {q.team_score}-{q.opponent_score}" for q in scores.quarter_scores
    )


def quarter_averages(all_scores: Iterable[GameScores]) -> Dict[int, Tuple[float, float]]:
    """Average (team, opponent) goals per quarter across games."""
    totals = {q: [0, 0] for q in QUARTERS}
    count = 0
    for scores in all_scores:
        count += 1
        for q in scores.quarter_scores:
            totals[q.quarter][0] += q.team_score
            totals[q.quarter][1] += q.opponent_score

    if not count:
        return {q: (0.0, 0.0) for q in QUARTERS}
    return {q: (team / count, opp / count) for q, (team, opp) in totals.items()}


__all__ = [
    "WinRateResult",
    "calculate_win_rate",
    "counts_toward_record",
    "format_quarter_breakdown",
    "format_score",
    "quarter_averages",
    "result_label",
]
