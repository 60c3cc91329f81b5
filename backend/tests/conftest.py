from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest

from polo_core import ApiClient, LocalStore, MemorySecretStore, Session

BASE_URL = "https://polo.test/api"

Payload = Any  # value, or callable(request) -> value


class FakeApi:
    """Route table served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Tuple[int, Payload, Callable[[httpx.Request], Exception] | None]] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        payload: Payload = None,
        status: int = 200,
        error: Callable[[httpx.Request], Exception] | None = None,
    ) -> None:
        self.routes[(method, "/api" + path)] = (status, payload, error)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": f"No route for {key}"})
        status, payload, error = self.routes[key]
        if error is not None:
            raise error(request)
        if callable(payload):
            payload = payload(request)
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def client(self, session: Session | None = None, **kwargs: Any) -> ApiClient:
        return ApiClient(BASE_URL, session=session, transport=httpx.MockTransport(self.handler), **kwargs)

    @property
    def calls(self) -> List[Tuple[str, str]]:
        return [(request.method, request.url.path.removeprefix("/api")) for request in self.requests]

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


def connect_error(request: httpx.Request) -> Exception:
    return httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(data_dir=tmp_path)


@pytest.fixture
def session() -> Session:
    return Session(MemorySecretStore())
