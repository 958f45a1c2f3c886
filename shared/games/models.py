"""
Game, statistics and score models.

Payloads arrive from the API with camelCase field names (already normalized
at the wire boundary). Each model accepts those payloads via
``from_payload`` and serializes back with ``to_document``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

QUARTERS = (1, 2, 3, 4)

RESULT_WIN = "win"
RESULT_LOSS = "loss"
RESULT_DRAW = "draw"

STATUS_FORFEIT_WIN = "forfeit-win"
STATUS_FORFEIT_LOSS = "forfeit-loss"
STATUS_BYE = "bye"


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any) -> int:
    parsed = _int_or_none(value)
    return parsed if parsed is not None else 0


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def result_for(team_score: int, opponent_score: int) -> str:
    if team_score > opponent_score:
        return RESULT_WIN
    if team_score < opponent_score:
        return RESULT_LOSS
    return RESULT_DRAW


@dataclass
class Game:
    id: int
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    season_id: Optional[int] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status_name: Optional[str] = None
    status_is_completed: bool = False
    status_team_goals: Optional[int] = None
    status_opponent_goals: Optional[int] = None
    is_inter_club: bool = False
    is_bye: bool = False

    @property
    def has_status_score(self) -> bool:
        # statusTeamGoals / statusOpponentGoals are stored home / away
        return self.status_team_goals is not None and self.status_opponent_goals is not None

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "Game":
        status_name = _first(raw, "statusName", "status")
        return cls(
            id=_int(raw.get("id")),
            home_team_id=_int_or_none(raw.get("homeTeamId")),
            away_team_id=_int_or_none(raw.get("awayTeamId")),
            season_id=_int_or_none(raw.get("seasonId")),
            date=raw.get("date"),
            time=raw.get("time"),
            status_name=status_name,
            status_is_completed=bool(_first(raw, "statusIsCompleted", "completed")),
            status_team_goals=_int_or_none(raw.get("statusTeamGoals")),
            status_opponent_goals=_int_or_none(raw.get("statusOpponentGoals")),
            is_inter_club=bool(raw.get("isInterClub", False)),
            is_bye=bool(raw.get("isBye", False)) or status_name == STATUS_BYE,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "homeTeamId": self.home_team_id,
            "awayTeamId": self.away_team_id,
            "seasonId": self.season_id,
            "date": self.date,
            "time": self.time,
            "statusName": self.status_name,
            "statusIsCompleted": self.status_is_completed,
            "statusTeamGoals": self.status_team_goals,
            "statusOpponentGoals": self.status_opponent_goals,
            "isInterClub": self.is_inter_club,
            "isBye": self.is_bye,
        }


@dataclass(frozen=True)
class FixedScore:
    """A final score carried by the game status (administrative override)."""

    team_score: int
    opponent_score: int


@dataclass
class GameStat:
    """One stat row per (game, team, position, quarter)."""

    id: Optional[int]
    game_id: int
    quarter: int
    team_id: Optional[int] = None
    position: Optional[str] = None
    goals_for: int = 0
    goals_against: int = 0
    missed_goals: int = 0
    rebounds: int = 0
    intercepts: int = 0
    bad_pass: int = 0
    handling_error: int = 0
    pick_up: int = 0
    infringement: int = 0
    rating: Optional[int] = None

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "GameStat":
        return cls(
            id=_int_or_none(raw.get("id")),
            game_id=_int(raw.get("gameId")),
            quarter=_int(raw.get("quarter")),
            team_id=_int_or_none(raw.get("teamId")),
            position=raw.get("position"),
            goals_for=_int(raw.get("goalsFor")),
            goals_against=_int(raw.get("goalsAgainst")),
            missed_goals=_int(raw.get("missedGoals")),
            rebounds=_int(raw.get("rebounds")),
            intercepts=_int(raw.get("intercepts")),
            bad_pass=_int(_first(raw, "badPass", "turnovers")),
            handling_error=_int(raw.get("handlingError")),
            pick_up=_int(_first(raw, "pickUp", "gains")),
            infringement=_int(_first(raw, "infringement", "penalties")),
            rating=_int_or_none(raw.get("rating")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gameId": self.game_id,
            "teamId": self.team_id,
            "position": self.position,
            "quarter": self.quarter,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "missedGoals": self.missed_goals,
            "rebounds": self.rebounds,
            "intercepts": self.intercepts,
            "badPass": self.bad_pass,
            "handlingError": self.handling_error,
            "pickUp": self.pick_up,
            "infringement": self.infringement,
            "rating": self.rating,
        }


@dataclass
class OfficialScore:
    """Directly entered score for one team in one quarter."""

    game_id: int
    team_id: int
    quarter: int
    score: int
    id: Optional[int] = None
    notes: Optional[str] = None
    entered_by: Optional[int] = None
    entered_at: Optional[str] = None

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "OfficialScore":
        return cls(
            id=_int_or_none(raw.get("id")),
            game_id=_int(raw.get("gameId")),
            team_id=_int(raw.get("teamId")),
            quarter=_int(raw.get("quarter")),
            score=_int(raw.get("score")),
            notes=raw.get("notes"),
            entered_by=_int_or_none(raw.get("enteredBy")),
            entered_at=raw.get("enteredAt"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gameId": self.game_id,
            "teamId": self.team_id,
            "quarter": self.quarter,
            "score": self.score,
            "notes": self.notes,
            "enteredBy": self.entered_by,
            "enteredAt": self.entered_at,
        }


@dataclass(frozen=True)
class QuarterScore:
    quarter: int
    team_score: int
    opponent_score: int

    def to_document(self) -> Dict[str, Any]:
        return {
            "quarter": self.quarter,
            "teamScore": self.team_score,
            "opponentScore": self.opponent_score,
        }


@dataclass(frozen=True)
class GameScores:
    """
    Derived score summary. Totals and result are computed from the quarter
    list at construction and cannot be supplied independently.
    """

    quarter_scores: tuple
    source: str = "stats"
    total_team_score: int = field(init=False)
    total_opponent_score: int = field(init=False)
    result: str = field(init=False)

    def __post_init__(self) -> None:
        quarters = tuple(sorted(self.quarter_scores, key=lambda q: q.quarter))
        if [q.quarter for q in quarters] != list(QUARTERS):
            raise ValueError(f"GameScores requires quarters 1-4, got {[q.quarter for q in quarters]}")

        team_total = sum(q.team_score for q in quarters)
        opponent_total = sum(q.opponent_score for q in quarters)

        object.__setattr__(self, "quarter_scores", quarters)
        object.__setattr__(self, "total_team_score", team_total)
        object.__setattr__(self, "total_opponent_score", opponent_total)
        object.__setattr__(self, "result", result_for(team_total, opponent_total))

    @classmethod
    def from_quarters(cls, per_quarter: Mapping[int, tuple], *, source: str) -> "GameScores":
        """Build from ``{quarter: (team, opponent)}``; missing quarters are 0-0."""
        quarters = []
        for quarter in QUARTERS:
            team, opponent = per_quarter.get(quarter, (0, 0))
            quarters.append(
                QuarterScore(
                    quarter=quarter,
                    team_score=max(0, int(team)),
                    opponent_score=max(0, int(opponent)),
                )
            )
        return cls(quarter_scores=tuple(quarters), source=source)

    def to_document(self) -> Dict[str, Any]:
        return {
            "quarterScores": [q.to_document() for q in self.quarter_scores],
            "totalTeamScore": self.total_team_score,
            "totalOpponentScore": self.total_opponent_score,
            "result": self.result,
            "source": self.source,
        }


@dataclass
class ClubAccess:
    club_id: int
    club_name: str = ""
    club_code: str = ""
    role: str = ""
    permissions: Dict[str, bool] = field(default_factory=dict)

    _PERMISSION_ALIASES = {
        "canManagePlayers": "can_manage_players",
        "canManageGames": "can_manage_games",
        "canManageStats": "can_manage_stats",
        "canViewOtherTeams": "can_view_other_teams",
    }

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "ClubAccess":
        permissions: Dict[str, bool] = {}
        for key, value in (raw.get("permissions") or {}).items():
            name = cls._PERMISSION_ALIASES.get(key, key)
            permissions[name] = bool(value)
        return cls(
            club_id=_int(_first(raw, "clubId", "id")),
            club_name=raw.get("clubName") or raw.get("name") or "",
            club_code=raw.get("clubCode") or raw.get("code") or "",
            role=raw.get("role") or "",
            permissions=permissions,
        )

    def has_permission(self, permission: str) -> bool:
        name = self._PERMISSION_ALIASES.get(permission, permission)
        return bool(self.permissions.get(name, False))


def parse_stats(rows: Optional[List[Mapping[str, Any]]]) -> List[GameStat]:
    return [row if isinstance(row, GameStat) else GameStat.from_payload(row) for row in rows or []]


def parse_official_scores(rows: Optional[List[Mapping[str, Any]]]) -> List[OfficialScore]:
    return [row if isinstance(row, OfficialScore) else OfficialScore.from_payload(row) for row in rows or []]


__all__ = [
    "QUARTERS",
    "RESULT_WIN",
    "RESULT_LOSS",
    "RESULT_DRAW",
    "STATUS_FORFEIT_WIN",
    "STATUS_FORFEIT_LOSS",
    "STATUS_BYE",
    "ClubAccess",
    "FixedScore",
    "Game",
    "GameScores",
    "GameStat",
    "OfficialScore",
    "QuarterScore",
    "parse_official_scores",
    "parse_stats",
    "result_for",
]
