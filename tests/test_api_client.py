import asyncio

import httpx
import pytest

from core.errors import ApiError, MalformedResponse
from services.api.client import HEADER_CLUB_ID, HEADER_TEAM_ID, ApiClient, unwrap_envelope


def test_unwrap_envelope_variants():
    assert unwrap_envelope({"success": True, "data": [1, 2]}) == [1, 2]
    assert unwrap_envelope({"data": {"a": 1}, "meta": {"page": 1}}) == {"a": 1}
    assert unwrap_envelope([{"id": 1}]) == [{"id": 1}]
    # A bare record that happens to have a "data" field is not an envelope
    assert unwrap_envelope({"id": 3, "data": "x"}) == {"id": 3, "data": "x"}


def test_failed_envelope_raises_with_message():
    with pytest.raises(ApiError, match="Club not found"):
        unwrap_envelope({"success": False, "error": {"message": "Club not found"}})


def test_scope_headers_follow_set_scope(handler, make_api):
    handler.routes[("GET", "/games")] = {"success": True, "data": []}

    async def scenario():
        api = make_api()
        await api.get("/games")
        api.set_scope(4, 40)
        await api.get("games")
        api.set_scope(5)
        await api.get("/games")
        await api.aclose()

    asyncio.run(scenario())

    first, second, third = handler.requests
    assert HEADER_CLUB_ID not in first.headers
    assert (second.headers[HEADER_CLUB_ID], second.headers[HEADER_TEAM_ID]) == ("4", "40")
    assert third.headers[HEADER_CLUB_ID] == "5"
    assert HEADER_TEAM_ID not in third.headers
    assert first.headers["user-agent"].startswith("CourtKeeper/")


def test_post_sends_json_body(handler, make_api):
    handler.routes[("POST", "/games/1/scores")] = lambda request: httpx.Response(201, json=handler.body(request))

    async def scenario():
        api = make_api()
        result = await api.post("/games/1/scores", {"quarter": 1, "score": 4})
        await api.aclose()
        return result

    assert asyncio.run(scenario()) == {"quarter": 1, "score": 4}


def test_http_error_becomes_api_error(handler, make_api):
    handler.routes[("PATCH", "/games/1")] = httpx.Response(403, json={"success": False, "error": "Forbidden"})

    async def scenario():
        api = make_api()
        try:
            await api.patch("/games/1", {"statusName": "completed"})
        finally:
            await api.aclose()

    with pytest.raises(ApiError) as info:
        asyncio.run(scenario())

    assert info.value.status_code == 403
    assert "Forbidden" in str(info.value)


def test_transport_error_becomes_api_error():
    def _raise(request):
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        api = ApiClient("http://testserver/api", transport=httpx.MockTransport(_raise))
        try:
            await api.get("/user/clubs")
        finally:
            await api.aclose()

    with pytest.raises(ApiError):
        asyncio.run(scenario())


def test_delete_no_content_returns_true(handler, make_api):
    handler.routes[("DELETE", "/games/1/scores")] = httpx.Response(204)

    async def scenario():
        api = make_api()
        result = await api.delete("/games/1/scores")
        await api.aclose()
        return result

    assert asyncio.run(scenario()) is True


def test_invalid_json_is_malformed(handler, make_api):
    handler.routes[("GET", "/games")] = httpx.Response(
        200, content=b"{not json", headers={"content-type": "application/json"}
    )

    async def scenario():
        api = make_api()
        try:
            await api.get("/games")
        finally:
            await api.aclose()

    with pytest.raises(MalformedResponse):
        asyncio.run(scenario())


def test_base_url_is_required():
    with pytest.raises(RuntimeError):
        ApiClient("")
