from __future__ import annotations

import os
import random
from collections.abc import Generator

import fakeredis
import pytest


@pytest.fixture(scope="session", autouse=True)
def _hermetic_env() -> None:
    """Keep a developer's .env / shell from leaking into tests."""

    for key in ("TICK_MS", "START_MONEY", "REDIS_URL"):
        os.environ.pop(key, None)


class FixedRandom(random.Random):
    """random.Random whose `random()` always returns the same draw."""

    def __init__(self, value: float = 0.5) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class RecordingHub:
    """Stands in for RoomWebSocketHub; remembers what would have been broadcast."""

    def __init__(self) -> None:
        self.broadcasts: list[tuple[str, dict[str, object]]] = []

    async def broadcast(self, room_id: str, payload: dict[str, object]) -> None:
        self.broadcasts.append((room_id, payload))

    def types(self, room_id: str | None = None) -> list[str]:
        return [str(p["type"]) for rid, p in self.broadcasts if room_id is None or rid == room_id]


@pytest.fixture()
def fake_redis() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to fakeredis, with tickers slow enough not to interfere.

    The registry is initialized before app startup, so startup keeps this instance.
    """

    from fastapi.testclient import TestClient

    from tradingroom.api.deps import get_redis
    from tradingroom.api.models import RoomSettings
    from tradingroom.main import app
    from tradingroom.registry import init_registry, reset_registry_for_tests

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    reset_registry_for_tests()
    init_registry(r=r, defaults=RoomSettings(tick_ms=60_000, start_money=1000))
    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
    reset_registry_for_tests()
