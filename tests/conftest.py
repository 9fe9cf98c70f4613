from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from goha_pos.api import ApiClient
from goha_pos.local_store import LocalStore

BASE_URL = "http://pos.test/api/v1"

Route = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """In-memory REST backend keyed by (method, path below /api/v1)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status, json=body)

    def add_handler(self, method: str, path: str, handler: Route) -> None:
        self.routes[(method, path)] = handler

    def fail(self, method: str, path: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, path)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, self.path_of(request)))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not Found"})
        return route(request)

    @staticmethod
    def path_of(request: httpx.Request) -> str:
        path = request.url.path
        prefix = "/api/v1"
        return path[len(prefix) :] if path.startswith(prefix) else path

    def called(self, method: str, path: str) -> list[httpx.Request]:
        return [req for req in self.calls if req.method == method and self.path_of(req) == path]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api(backend: FakeBackend):
    client = ApiClient(BASE_URL, transport=httpx.MockTransport(backend.handler))
    yield client
    client.close()


@pytest.fixture
def store(tmp_path) -> LocalStore:
    local = LocalStore(tmp_path / "pos.db")
    local.bootstrap_schema()
    return local


@pytest.fixture
def logged_in_store(store: LocalStore) -> LocalStore:
    store.set_current_user({"user_id": "u1", "full_name": "Ali", "username": "ali"})
    store.set_current_shift({"shift_id": "s1", "type": "morning"})
    return store
