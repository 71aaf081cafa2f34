from __future__ import annotations

import json
import logging

import redis
from pydantic import ValidationError

from tradingroom.api.models import CatalogEntry, HighscoreEntry, RoomSettings
from tradingroom.core.events import GameOverEvent

logger = logging.getLogger(__name__)


CATALOG_KEY = "tradingroom:commodities"
HIGHSCORES_STREAM_KEY = "tradingroom:highscores"
ROOM_SETTINGS_KEY_PREFIX = "tradingroom:room:"  # + {room_id}:settings

HIGHSCORE_LIMIT = 50

DEFAULT_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(id="kokain", name="Kokainhydrochlorid", min_price=15, max_price=120, base_price=50),
    CatalogEntry(id="diamorphin", name="Diacethylmorphin", min_price=15, max_price=90, base_price=40),
    CatalogEntry(id="dmt", name="Dimethyltryptamin", min_price=10, max_price=200, base_price=80),
)


def _room_settings_key(room_id: str) -> str:
    return f"{ROOM_SETTINGS_KEY_PREFIX}{room_id}:settings"


# ---- commodity catalog ----


def seed_catalog(*, r: redis.Redis, entries: tuple[CatalogEntry, ...] = DEFAULT_CATALOG) -> int:
    """Populate the catalog if it is empty. Returns the number of rows written."""

    if r.hlen(CATALOG_KEY):
        return 0
    r.hset(CATALOG_KEY, mapping={e.id: e.model_dump_json() for e in entries})
    logger.info("Seeded %d commodities", len(entries))
    return len(entries)


def load_catalog(*, r: redis.Redis) -> list[CatalogEntry]:
    raw = r.hgetall(CATALOG_KEY)
    out: list[CatalogEntry] = []
    # Stable order for determinism.
    for cid in sorted(raw):
        try:
            out.append(CatalogEntry.model_validate_json(raw[cid]))
        except ValidationError:
            logger.warning("Skipping malformed catalog entry %r", cid)
    return out


# ---- room settings ----


def load_room_settings(*, r: redis.Redis, room_id: str, defaults: RoomSettings) -> RoomSettings:
    """Stored settings merged over `defaults`; anything unreadable falls back to defaults."""

    try:
        raw = r.get(_room_settings_key(room_id))
    except redis.RedisError:
        logger.exception("Could not load settings for room %s; using defaults", room_id)
        return defaults
    if not raw:
        return defaults

    try:
        stored = json.loads(raw)
        if not isinstance(stored, dict):
            raise ValueError("settings blob is not an object")
        return RoomSettings.model_validate({**defaults.to_wire(), **stored})
    except (ValueError, ValidationError):
        logger.warning("Ignoring unreadable settings for room %s", room_id)
        return defaults


def save_room_settings(*, r: redis.Redis, room_id: str, settings: RoomSettings) -> bool:
    try:
        r.set(_room_settings_key(room_id), json.dumps(settings.to_wire()))
    except redis.RedisError:
        logger.exception("Could not save settings for room %s", room_id)
        return False
    return True


# ---- highscores ----


def append_highscore(*, r: redis.Redis, event: GameOverEvent) -> str | None:
    """Append one row to the highscore stream. Best-effort: failures are logged."""

    fields = {
        "player_name": event.winner_name,
        "cash": str(event.cash),
        "timestamp": str(event.timestamp_ms),
    }
    try:
        return str(r.xadd(HIGHSCORES_STREAM_KEY, fields))
    except redis.RedisError:
        logger.exception("Could not record highscore for %s", event.winner_name)
        return None


def list_highscores(*, r: redis.Redis, limit: int = HIGHSCORE_LIMIT) -> list[HighscoreEntry]:
    out: list[HighscoreEntry] = []
    for _, fields in r.xrange(HIGHSCORES_STREAM_KEY):
        try:
            out.append(
                HighscoreEntry(
                    player_name=fields["player_name"],
                    cash=float(fields["cash"]),
                    timestamp=int(fields["timestamp"]),
                )
            )
        except (KeyError, ValueError):
            continue
    out.sort(key=lambda h: h.cash, reverse=True)
    return out[:limit]
