from __future__ import annotations

import json
from datetime import datetime, timezone

import fakeredis
import pytest

from tradingroom.api.models import CatalogEntry, RoomSettings
from tradingroom.core.events import GameOverEvent
from tradingroom.store import (
    CATALOG_KEY,
    DEFAULT_CATALOG,
    append_highscore,
    list_highscores,
    load_catalog,
    load_room_settings,
    save_room_settings,
    seed_catalog,
)


DEFAULTS = RoomSettings(tick_ms=1000, start_money=1000)


def _event(name: str, cash: float, ts_ms: int = 1_700_000_000_000) -> GameOverEvent:
    return GameOverEvent(
        room_id="main",
        winner_id=name.lower(),
        winner_name=name,
        cash=cash,
        reason="money",
        ts=datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc),
    )


def _broken_redis() -> fakeredis.FakeRedis:
    server = fakeredis.FakeServer()
    server.connected = False
    return fakeredis.FakeRedis(server=server, decode_responses=True)


def test_seed_catalog_only_when_empty(fake_redis: fakeredis.FakeRedis) -> None:
    assert seed_catalog(r=fake_redis) == len(DEFAULT_CATALOG)
    assert seed_catalog(r=fake_redis) == 0
    assert fake_redis.hlen(CATALOG_KEY) == 3


def test_load_catalog_is_sorted_and_skips_garbage(fake_redis: fakeredis.FakeRedis) -> None:
    seed_catalog(r=fake_redis)
    fake_redis.hset(CATALOG_KEY, "broken", "{not json")
    catalog = load_catalog(r=fake_redis)
    assert [c.id for c in catalog] == ["diamorphin", "dmt", "kokain"]
    kokain = catalog[-1]
    assert (kokain.min_price, kokain.max_price, kokain.base_price) == (15, 120, 50)


def test_catalog_entry_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        CatalogEntry(id="z", name="Z", min_price=50, max_price=10, base_price=20)


def test_settings_default_when_nothing_stored(fake_redis: fakeredis.FakeRedis) -> None:
    assert load_room_settings(r=fake_redis, room_id="main", defaults=DEFAULTS) == DEFAULTS


def test_settings_round_trip(fake_redis: fakeredis.FakeRedis) -> None:
    s = RoomSettings(tick_ms=250, start_money=5000, win_by_money=False, money_target=42, time_target_sec=60)
    assert save_room_settings(r=fake_redis, room_id="main", settings=s) is True
    assert load_room_settings(r=fake_redis, room_id="main", defaults=DEFAULTS) == s
    assert load_room_settings(r=fake_redis, room_id="other", defaults=DEFAULTS) == DEFAULTS


def test_partial_stored_settings_merge_over_defaults(fake_redis: fakeredis.FakeRedis) -> None:
    fake_redis.set("tradingroom:room:main:settings", json.dumps({"tickMs": 300}))
    s = load_room_settings(r=fake_redis, room_id="main", defaults=DEFAULTS)
    assert s.tick_ms == 300
    assert s.start_money == DEFAULTS.start_money


@pytest.mark.parametrize("blob", ["{oops", "[1, 2]", json.dumps({"tickMs": -1})])
def test_unreadable_settings_fall_back(fake_redis: fakeredis.FakeRedis, blob: str) -> None:
    fake_redis.set("tradingroom:room:main:settings", blob)
    assert load_room_settings(r=fake_redis, room_id="main", defaults=DEFAULTS) == DEFAULTS


def test_persistence_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    r = _broken_redis()
    assert save_room_settings(r=r, room_id="main", settings=DEFAULTS) is False
    assert append_highscore(r=r, event=_event("Alice", 10)) is None
    assert load_room_settings(r=r, room_id="main", defaults=DEFAULTS) == DEFAULTS
    assert "Could not save settings" in caplog.text
    assert "Could not record highscore" in caplog.text


def test_highscores_sorted_by_cash_and_limited(fake_redis: fakeredis.FakeRedis) -> None:
    append_highscore(r=fake_redis, event=_event("Alice", 1500.5))
    append_highscore(r=fake_redis, event=_event("Bob", 120_000))
    append_highscore(r=fake_redis, event=_event("Carol", 99))

    rows = list_highscores(r=fake_redis)
    assert [h.player_name for h in rows] == ["Bob", "Alice", "Carol"]
    assert rows[1].cash == 1500.5
    assert rows[0].timestamp == 1_700_000_000_000
    assert rows[0].to_wire() == {"playerName": "Bob", "cash": 120000.0, "timestamp": 1_700_000_000_000}

    assert len(list_highscores(r=fake_redis, limit=2)) == 2
