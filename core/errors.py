"""Runtime exception types."""

from __future__ import annotations

from typing import Optional


class AccessDenied(RuntimeError):
    """Raised when a tenant switch targets a club the user cannot access."""

    def __init__(self, club_id: int):
        super().__init__(f"Access denied to club {club_id}")
        self.club_id = club_id


class ApiError(RuntimeError):
    """
    Network or HTTP failure from the data-access client.
    Recoverable by the fetcher (batch -> per-game -> empty fallbacks).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.path = path


class MalformedResponse(RuntimeError):
    """Raised when a response body is not the JSON shape the caller needs."""


__all__ = [
    "AccessDenied",
    "ApiError",
    "MalformedResponse",
]
