"""
Club manager REST client.

Responsibilities:
- Issue JSON requests against the club manager API
- Stamp every request with the active tenant scope headers
- Normalize the ``{"success": ..., "data": ...}`` envelope in one place
- Convert transport/HTTP failures into ApiError
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from core.errors import ApiError, MalformedResponse
from runtime import version as runtime_version
from shared.logging.logger import get_logger

log = get_logger("api.client")

HEADER_CLUB_ID = "x-current-club-id"
HEADER_TEAM_ID = "x-current-team-id"

_ENVELOPE_MARKERS = ("success", "meta")


def unwrap_envelope(payload: Any) -> Any:
    """
    Return the data carried by a standardized response envelope.

    Envelopes look like ``{"success": true, "data": ..., "meta": {...}}``.
    Anything else (bare lists, bare records) is returned unchanged. A
    ``success: false`` envelope raises ApiError with its error message.
    """
    if not isinstance(payload, dict):
        return payload

    if not any(marker in payload for marker in _ENVELOPE_MARKERS):
        return payload

    if payload.get("success") is False:
        raise ApiError(extract_error_message(payload))

    if "data" in payload:
        return payload["data"]
    return payload


def extract_error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if payload.get("message"):
            return str(payload["message"])
    return "An unknown error occurred"


class ApiClient:
    """
    Async JSON client with tenant scoping.

    ``set_scope`` is synchronous: once it returns, the next request built by
    this client carries the new club/team headers.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise RuntimeError("API base_url is required")

        self.base_url = base_url.rstrip("/")
        self._club_id: Optional[int] = None
        self._team_id: Optional[int] = None
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "User-Agent": runtime_version.user_agent(),
            },
        )

    # ------------------------------------------------------------------ #
    # Tenant scope
    # ------------------------------------------------------------------ #

    def set_scope(self, club_id: Optional[int], team_id: Optional[int] = None) -> None:
        self._club_id = club_id
        self._team_id = team_id if club_id is not None else None
        log.debug(f"API scope set (club={self._club_id}, team={self._team_id})")

    @property
    def scope(self) -> Dict[str, Optional[int]]:
        return {"club_id": self._club_id, "team_id": self._team_id}

    def _scope_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._club_id is not None:
            headers[HEADER_CLUB_ID] = str(self._club_id)
        if self._team_id is not None:
            headers[HEADER_TEAM_ID] = str(self._team_id)
        return headers

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        if not path.startswith("/"):
            path = "/" + path

        kwargs: Dict[str, Any] = {"headers": self._scope_headers()}
        if body is not None and method != "GET":
            kwargs["json"] = body

        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}", path=path) from e

        if response.status_code == 204:
            return True if method == "DELETE" else None

        if response.is_error:
            detail = response.text.strip()
            try:
                detail = extract_error_message(response.json())
            except ValueError:
                pass
            raise ApiError(
                f"{method} {path} returned HTTP {response.status_code}: {detail or response.reason_phrase}",
                status_code=response.status_code,
                path=path,
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response.text

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"{method} {path} returned invalid JSON: {e}") from e

        return unwrap_envelope(payload)

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request("PATCH", path, body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


__all__ = [
    "HEADER_CLUB_ID",
    "HEADER_TEAM_ID",
    "ApiClient",
    "extract_error_message",
    "unwrap_envelope",
]
