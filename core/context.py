from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class TenantContext:
    # -------------------------------------------------
    # SCOPE
    # -------------------------------------------------
    current_club_id: Optional[int] = None
    current_team_id: Optional[int] = None

    # -------------------------------------------------

    @property
    def has_club(self) -> bool:
        return self.current_club_id is not None

    def with_club(self, club_id: Optional[int], *, preserve_team: bool = False) -> "TenantContext":
        # Team selection does not carry across clubs unless asked to
        team_id = self.current_team_id if preserve_team else None
        return TenantContext(current_club_id=club_id, current_team_id=team_id)

    def with_team(self, team_id: Optional[int]) -> "TenantContext":
        return replace(self, current_team_id=team_id)

    def team_is_away(self, away_team_id: Optional[int]) -> bool:
        """
        Perspective rule: the current team is "team" when it is the away
        side; every other case (including no team selected) reads as home.
        """
        return (
            self.current_team_id is not None
            and away_team_id is not None
            and self.current_team_id == away_team_id
        )
