"""
Offline score report.

Resolves every game in an exported JSON document and prints one line per
game plus the win/loss record for the chosen team.

Expected input shape:

    {
        "games": [{"id": 1, "homeTeamId": 10, "awayTeamId": 20, ...}],
        "stats": {"1": [{"id": 5, "quarter": 1, "goalsFor": 3, ...}]},
        "officialScores": {"1": [{"gameId": 1, "teamId": 10, ...}]}
    }
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.context import TenantContext  # noqa: E402
from core.scoring.resolver import ScoreResolver  # noqa: E402
from core.scoring.summary import (  # noqa: E402
    calculate_win_rate,
    format_quarter_breakdown,
    format_score,
    result_label,
)
from shared.games.models import Game, parse_official_scores, parse_stats  # noqa: E402


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve and print game scores from an export")
    parser.add_argument("input", type=Path, help="Path to the exported games JSON")
    parser.add_argument(
        "--team",
        type=int,
        default=None,
        help="Team id whose perspective to report from (default: home side)",
    )
    parser.add_argument(
        "--quarters",
        action="store_true",
        help="Include the per-quarter breakdown",
    )
    return parser.parse_args(argv)


def _by_game(raw: Any) -> Dict[int, List[Dict[str, Any]]]:
    if not isinstance(raw, dict):
        return {}

    by_game: Dict[int, List[Dict[str, Any]]] = {}
    for key, rows in raw.items():
        try:
            by_game[int(key)] = rows
        except (TypeError, ValueError):
            print(f"[REPORT WARNING] Skipping entry with non-numeric game id {key!r}", file=sys.stderr)
    return by_game


def build_report(document: Dict[str, Any], team_id: Optional[int], quarters: bool = False) -> List[str]:
    resolver = ScoreResolver()
    context = TenantContext(current_team_id=team_id)

    games = [Game.from_payload(g) for g in document.get("games") or []]
    stats = _by_game(document.get("stats"))
    official = _by_game(document.get("officialScores"))

    lines: List[str] = []
    results = []
    for game in games:
        scores = resolver.resolve_scores(
            game,
            stats=parse_stats(stats.get(game.id)),
            official_scores=parse_official_scores(official.get(game.id)),
            context=context,
        )
        results.append((game, scores))

        line = f"Game {game.id}: {format_score(scores)} {result_label(scores)} [{scores.source}]"
        if quarters:
            line += f"  ({format_quarter_breakdown(scores)})"
        lines.append(line)

    record = calculate_win_rate(results)
    lines.append(
        f"Record: {record.wins}W {record.losses}L {record.draws}D "
        f"({record.win_rate:.1f}% of {record.total_games} completed)"
    )
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        document = json.loads(args.input.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"[REPORT ERROR] {args.input}: {e}", file=sys.stderr)
        return 1

    if not isinstance(document, dict):
        print(f"[REPORT ERROR] {args.input}: root JSON value must be an object", file=sys.stderr)
        return 1

    for line in build_report(document, args.team, args.quarters):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
