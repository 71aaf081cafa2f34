from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

import redis

from tradingroom.api.models import RoomSettings, SettingsUpdate
from tradingroom.config import settings_from_env
from tradingroom.core import wire
from tradingroom.core.events import GameOverEvent
from tradingroom.core.pricing import PriceModel
from tradingroom.infra.redis_client import create_redis
from tradingroom.room import Room
from tradingroom.store import append_highscore, load_catalog, load_room_settings, save_room_settings
from tradingroom.websocket_hub import RoomWebSocketHub, hub

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Owns every Room of the process and the ticker task of each.

    One Room instance per id for the process lifetime; stopped rooms stay registered.
    Ticker tasks carry a generation number: stopping or restarting bumps it, so a task
    that was already scheduled never ticks on behalf of a newer ticker.
    """

    def __init__(
        self,
        *,
        r: redis.Redis,
        hub: RoomWebSocketHub,
        defaults: RoomSettings | None = None,
        price_model: PriceModel | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.r = r
        self._hub = hub
        self._defaults = defaults or RoomSettings.defaults(settings_from_env())
        self._price_model = price_model
        self._clock = clock
        self._rooms: dict[str, Room] = {}
        self._tickers: dict[str, asyncio.Task[None]] = {}
        self._generations: dict[str, int] = {}

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is not None:
            return room

        catalog = load_catalog(r=self.r)
        settings = load_room_settings(r=self.r, room_id=room_id, defaults=self._defaults)
        room = Room(
            room_id=room_id,
            catalog=catalog,
            settings=settings,
            price_model=self._price_model,
            clock=self._clock,
        )
        self._rooms[room_id] = room
        logger.info("Created room %s with %d commodities", room_id, len(room.commodities))
        return room

    def open_room(self, room_id: str) -> Room:
        """get_or_create, starting the ticker when the room is new. Needs a running loop."""

        is_new = room_id not in self._rooms
        room = self.get_or_create(room_id)
        if is_new:
            self.start_ticker(room_id)
        return room

    # ---- tickers ----

    def is_ticking(self, room_id: str) -> bool:
        task = self._tickers.get(room_id)
        return task is not None and not task.done()

    def start_ticker(self, room_id: str, interval_ms: int | None = None) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return
        self.stop_ticker(room_id)

        interval_ms = interval_ms or room.settings.tick_ms
        generation = self._generations.get(room_id, 0) + 1
        self._generations[room_id] = generation
        self._tickers[room_id] = asyncio.get_running_loop().create_task(
            self._run_ticker(room_id, interval_ms / 1000, generation),
            name=f"ticker:{room_id}",
        )
        logger.debug("Ticker for room %s started every %dms", room_id, interval_ms)

    def stop_ticker(self, room_id: str) -> bool:
        """Idempotent. Returns True if a live ticker was stopped."""

        self._generations[room_id] = self._generations.get(room_id, 0) + 1
        task = self._tickers.pop(room_id, None)
        if task is None or task.done():
            return False
        # A ticker stopping itself (game over) must finish its own broadcast.
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug("Ticker for room %s stopped", room_id)
        return True

    def stop_all(self) -> None:
        for room_id in list(self._tickers):
            self.stop_ticker(room_id)

    async def _run_ticker(self, room_id: str, interval_s: float, generation: int) -> None:
        while True:
            await asyncio.sleep(interval_s)
            if self._generations.get(room_id) != generation:
                return
            try:
                ev = await self.tick_once(room_id)
            except Exception:
                logger.exception("Tick failed for room %s", room_id)
                continue
            if ev is not None:
                return

    async def tick_once(self, room_id: str) -> GameOverEvent | None:
        """One tick: advance prices and check the win condition, then publish."""

        room = self._rooms.get(room_id)
        if room is None or not room.is_active:
            return None

        # No await between these two: nothing can trade against half-updated prices.
        public = room.tick()
        ev = room.check_win_condition()
        if ev is not None:
            self.stop_ticker(room_id)

        await self._hub.broadcast(room_id, wire.market_update(public))
        if ev is not None:
            append_highscore(r=self.r, event=ev)
            await self._hub.broadcast(room_id, wire.game_over(ev))
        return ev

    # ---- settings ----

    def update_settings(self, room_id: str, patch: SettingsUpdate) -> RoomSettings | None:
        """Merge, persist and restart the ticker. Reactivates a stopped room."""

        room = self._rooms.get(room_id)
        if room is None:
            return None
        settings = room.update_settings(patch)
        save_room_settings(r=self.r, room_id=room_id, settings=settings)
        self.start_ticker(room_id)
        logger.info("Room %s settings updated: %s", room_id, settings.to_wire())
        return settings


_REGISTRY: RoomRegistry | None = None


def init_registry(*, r: redis.Redis | None = None, defaults: RoomSettings | None = None) -> RoomRegistry:
    """Create the process-wide registry once.

    Safe to call multiple times; subsequent calls return the already created instance.
    """

    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = RoomRegistry(r=r if r is not None else create_redis(), hub=hub, defaults=defaults)
    return _REGISTRY


def reset_registry_for_tests() -> None:
    global _REGISTRY
    _REGISTRY = None


def get_registry() -> RoomRegistry:
    if _REGISTRY is None:
        raise RuntimeError("Registry not initialized. Call init_registry() at startup.")
    return _REGISTRY
