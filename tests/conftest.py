from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest


class OrderBackend:
    """Stand-in for the order-creation endpoint, used through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.status_code = 201
        self.body: dict | None = {"order_id": "ord_123"}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.error is not None:
            raise self.error
        if self.body is None:
            return httpx.Response(self.status_code, text="upstream exploded")
        return httpx.Response(self.status_code, json=self.body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def convergence_scenarios(fixtures_dir: Path) -> list[dict]:
    return json.loads((fixtures_dir / "convergence.json").read_text(encoding="utf-8"))


@pytest.fixture
def order_backend() -> OrderBackend:
    return OrderBackend()
