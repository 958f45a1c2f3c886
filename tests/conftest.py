import json
import os

# Keep test runs from writing per-run log files
os.environ.setdefault("COURTKEEPER_LOG_FILE", "0")

import httpx  # noqa: E402
import pytest  # noqa: E402

from services.api.client import ApiClient  # noqa: E402
from shared.storage.tenant_store import TenantStore  # noqa: E402


class ManualClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHandler:
    """
    Routes ``(method, path)`` to canned responses and records every request.
    A route value may be a callable taking the request.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]

        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"success": False, "error": {"message": f"No route {path}"}})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def calls(self, method: str, path: str) -> list:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.endswith(path)
        ]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def tenant_store(tmp_path):
    return TenantStore(tmp_path / "state")


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def make_api(handler):
    def _make() -> ApiClient:
        return ApiClient("http://testserver/api", transport=httpx.MockTransport(handler))

    return _make
