"""Shared test fixtures for the Erply client test suite.

FakeTransport stands in for the HTTP transport so the client can be
exercised without a live Erply account.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

import pytest

from erply_client.clients.api_client import ApiClient
from erply_client.core.config import ClientConfig
from erply_client.schemas.calls import TransportOutcome

API_URL = "https://123456.erply.com/api/"
NOW = 1_700_000_000


def ok(payload: Any) -> TransportOutcome:
    return TransportOutcome(body=json.dumps(payload), status_code=200)


def verify_user_ok(key: str = "abc", length: int = 3600) -> TransportOutcome:
    return ok({"status": {"errorCode": 0}, "records": [{"sessionKey": key, "sessionLength": length}]})


class FakeTransport:
    """Transport double that replays queued outcomes and records calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict, dict]] = []
        self.outcomes: list[TransportOutcome] = []
        self.closed = False

    def queue(self, *outcomes: TransportOutcome) -> "FakeTransport":
        self.outcomes.extend(outcomes)
        return self

    def post(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        connection_timeout: Optional[int] = None,
        execution_timeout: Optional[int] = None,
    ) -> TransportOutcome:
        self.calls.append((url, dict(params), {
            "connection_timeout": connection_timeout,
            "execution_timeout": execution_timeout,
        }))
        if not self.outcomes:
            raise AssertionError(f"unexpected transport call: {params.get('request')}")
        return self.outcomes.pop(0)

    def close(self) -> None:
        self.closed = True

    @property
    def requests(self) -> list[str]:
        return [params["request"] for _, params, _ in self.calls]


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(url=API_URL, client_code="123456", username="api-user", password="s3cret")


@pytest.fixture
def client(config: ClientConfig, transport: FakeTransport, clock: FakeClock) -> ApiClient:
    return ApiClient(config, transport=transport, clock=clock)
