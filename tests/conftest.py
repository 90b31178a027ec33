"""
Shared fixtures: a fake NS API served through ``httpx.MockTransport``.
"""

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from ns_travel_mcp.config import NsApiSettings
from ns_travel_mcp.ns_api import NsApiClient
from ns_travel_mcp.tools import TravelTools

API_KEY = "0123456789abcdef0123456789abcdef"
BASE_URL = "https://ns.test"


class FakeNsApi:
    """Answers requests by path and remembers every request it saw."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, payload: Any = None, *, status: int = 200, text: Optional[str] = None) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text, headers={"content-type": "text/html"})
            return httpx.Response(status, json=payload)

        self.routes[path] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]


@pytest.fixture
def fake_api() -> FakeNsApi:
    return FakeNsApi()


@pytest.fixture
def settings() -> NsApiSettings:
    return NsApiSettings(api_key=API_KEY, base_url=BASE_URL)


@pytest.fixture
def client(settings, fake_api) -> NsApiClient:
    return NsApiClient(settings, transport=fake_api.transport)


@pytest.fixture
def tools(settings, fake_api) -> TravelTools:
    return TravelTools.from_settings(settings, transport=fake_api.transport)


def leg(origin: str, destination: str, departs: str, arrives: str, **extra: Any) -> dict[str, Any]:
    data = {
        "origin": {"name": origin, "plannedDateTime": departs, "actualDateTime": departs, "track": "5"},
        "destination": {"name": destination, "plannedDateTime": arrives, "track": "8"},
        "product": {"displayName": "NS Intercity", "operatorName": "NS"},
        "cancelled": False,
        "crowdForecast": "MEDIUM",
    }
    data.update(extra)
    return data


def parse(text: str) -> Any:
    return json.loads(text)
