import json
from typing import Any, Dict, List, Optional

import pytest


class FakeResponse:
    def __init__(self, status_code: int = 200, *, payload: Any = None, text: str = "", content: Optional[bytes] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if payload is None else json.dumps(payload)
        self.content = content if content is not None else self.text.encode("utf-8")

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """Minimal stand-in for requests.Session keyed by exact URL."""

    def __init__(self, routes: Dict[str, FakeResponse]):
        self.routes = routes
        self.calls: List[str] = []

    def get(self, url: str, timeout: int = 30) -> FakeResponse:
        self.calls.append(url)
        return self.routes.get(url, FakeResponse(404, text="not found"))


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse
