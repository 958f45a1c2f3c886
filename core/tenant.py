"""
Tenant context manager.

Owns the active club/team selection for the runtime:

- UNINITIALIZED -> INITIALIZING when the accessible clubs arrive
- INITIALIZING -> READY exactly once, after the chosen club has been
  persisted and pushed into the API client scope
- club switches are access-checked, persisted and propagated before
  returning; the team selection is cleared unless explicitly preserved
- team selection is debounced so rapid changes settle into one update

There is exactly one TenantContextManager per runtime (see core/app.py).
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.context import TenantContext
from core.errors import AccessDenied
from services.api.client import ApiClient
from shared.games.models import ClubAccess
from shared.logging.logger import get_logger
from shared.runtime.timers import DebouncedCall
from shared.storage.tenant_store import CLUB_KEY, TEAM_KEY, TenantStore

log = get_logger("core.tenant")

DEFAULT_TEAM_DEBOUNCE_SECONDS = 0.1

ScopeListener = Callable[[TenantContext], None]


class TenantState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class TenantContextManager:
    def __init__(
        self,
        *,
        store: TenantStore,
        api_client: Optional[ApiClient] = None,
        fallback_club_id: Optional[int] = None,
        team_debounce_seconds: float = DEFAULT_TEAM_DEBOUNCE_SECONDS,
    ):
        self._store = store
        self._api_client = api_client
        self._fallback_club_id = fallback_club_id

        self._state = TenantState.UNINITIALIZED
        self._context = TenantContext()
        self._clubs: Dict[int, ClubAccess] = {}
        self._club_order: List[int] = []
        self._listeners: List[ScopeListener] = []

        self._team_debounce = DebouncedCall(self._apply_team, team_debounce_seconds)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> TenantState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is TenantState.READY

    @property
    def context(self) -> TenantContext:
        return self._context

    @property
    def current_club_id(self) -> Optional[int]:
        return self._context.current_club_id

    @property
    def current_team_id(self) -> Optional[int]:
        return self._context.current_team_id

    @property
    def current_club(self) -> Optional[ClubAccess]:
        if self._context.current_club_id is None:
            return None
        return self._clubs.get(self._context.current_club_id)

    @property
    def accessible_clubs(self) -> List[ClubAccess]:
        return [self._clubs[club_id] for club_id in self._club_order]

    @property
    def has_pending_team_update(self) -> bool:
        return self._team_debounce.pending

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: ScopeListener) -> Callable[[], None]:
        """Subscribe to scope changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._context)
            except Exception as e:
                log.warning(f"Tenant listener {listener!r} failed: {e}")

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def load_accessible_clubs(self, clubs: Iterable[Any]) -> List[ClubAccess]:
        parsed = [c if isinstance(c, ClubAccess) else ClubAccess.from_payload(c) for c in clubs]

        self._clubs = {}
        self._club_order = []
        for club in parsed:
            if club.club_id in self._clubs:
                continue
            self._clubs[club.club_id] = club
            self._club_order.append(club.club_id)

        if self._state is TenantState.UNINITIALIZED:
            self._state = TenantState.INITIALIZING

        log.info(f"Loaded {len(self._club_order)} accessible club(s)")
        return self.accessible_clubs

    def _initial_club_id(self) -> Optional[int]:
        persisted = self._store.get_int(CLUB_KEY)
        if persisted is not None:
            if persisted in self._clubs:
                return persisted
            log.debug(f"Persisted club {persisted} is no longer accessible; discarding")

        if self._fallback_club_id is not None and self._fallback_club_id in self._clubs:
            return self._fallback_club_id

        return self._club_order[0] if self._club_order else None

    def complete_initialization(self) -> bool:
        """
        Pick the initial club and mark the context READY.

        Runs once per process. Returns False when initialization already
        completed, the clubs have not been loaded, or none are accessible.
        """
        if self._state is TenantState.READY:
            log.debug("Tenant context already initialized; skipping")
            return False

        if self._state is TenantState.UNINITIALIZED:
            log.warning("complete_initialization called before accessible clubs were loaded")
            return False

        club_id = self._initial_club_id()
        if club_id is None:
            log.warning("No accessible clubs; tenant context stays INITIALIZING")
            return False

        team_id = None
        if self._store.get_int(CLUB_KEY) == club_id:
            team_id = self._store.get_int(TEAM_KEY)

        self._context = TenantContext(current_club_id=club_id, current_team_id=team_id)
        self._store.set(CLUB_KEY, club_id)
        if team_id is None:
            self._store.remove(TEAM_KEY)
        self._propagate()

        self._state = TenantState.READY
        log.info(f"Tenant context ready (club={club_id}, team={team_id})")
        self._notify()
        return True

    async def bootstrap(self) -> bool:
        """Fetch the user's clubs from the API and initialize from them."""
        if self._api_client is None:
            raise RuntimeError("bootstrap requires an API client")

        clubs = await self._api_client.get("/user/clubs")
        self.load_accessible_clubs(clubs or [])
        return self.complete_initialization()

    # ------------------------------------------------------------------
    # Club selection
    # ------------------------------------------------------------------

    def require_club_access(self, club_id: int) -> ClubAccess:
        club = self._clubs.get(club_id)
        if club is None:
            raise AccessDenied(club_id)
        return club

    def switch_club(self, club_id: int, *, preserve_team: bool = False) -> bool:
        try:
            self.require_club_access(club_id)
        except AccessDenied as e:
            log.warning(f"{e}; keeping club {self._context.current_club_id}")
            return False

        # A pending team change belongs to the previous club
        self._team_debounce.cancel()

        self._context = self._context.with_club(club_id, preserve_team=preserve_team)
        self._store.set(CLUB_KEY, club_id)
        self._store.set(TEAM_KEY, self._context.current_team_id)
        self._propagate()

        log.info(f"Switched to club {club_id} (team={self._context.current_team_id})")
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Team selection
    # ------------------------------------------------------------------

    def set_current_team_id(self, team_id: Optional[int]) -> None:
        """Schedule a team change; only the last call inside the window applies."""
        self._team_debounce.schedule(team_id)

    def flush_pending(self) -> bool:
        return self._team_debounce.flush()

    def _apply_team(self, team_id: Optional[int]) -> None:
        if team_id == self._context.current_team_id:
            return

        self._context = self._context.with_team(team_id)
        self._store.set(TEAM_KEY, team_id)
        self._propagate()

        log.info(f"Current team set to {team_id}")
        self._notify()

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    def has_permission(self, permission: str) -> bool:
        club = self.current_club
        if club is None:
            return False
        return club.has_permission(permission)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _propagate(self) -> None:
        if self._api_client is None:
            return
        self._api_client.set_scope(self._context.current_club_id, self._context.current_team_id)

    def shutdown(self) -> None:
        self._team_debounce.cancel()


__all__ = [
    "DEFAULT_TEAM_DEBOUNCE_SECONDS",
    "TenantContextManager",
    "TenantState",
]
