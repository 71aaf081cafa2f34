from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RoomWebSocketHub:
    """In-process WebSocket pub/sub keyed by room_id and player_id.

    Contract:
      - register a joined player's socket via `attach(room_id, player_id, websocket)`.
      - forget it again with `detach(room_id, player_id)`.
      - fan out with `broadcast(room_id, payload)`.

    Payloads should be JSON-serializable dicts. Sockets that fail on send are dropped.
    """

    def __init__(self) -> None:
        self._by_room: dict[str, dict[str, WebSocket]] = defaultdict(dict)
        self._lock = asyncio.Lock()

    async def attach(self, room_id: str, player_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._by_room[room_id][player_id] = websocket

    async def detach(self, room_id: str, player_id: str) -> None:
        async with self._lock:
            conns = self._by_room.get(room_id)
            if not conns:
                return
            conns.pop(player_id, None)
            if not conns:
                self._by_room.pop(room_id, None)

    async def broadcast(self, room_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_room.get(room_id, {}).items())

        if not conns:
            return

        dead: list[str] = []
        for player_id, ws in conns:
            if not await send_json_safe(ws, payload):
                dead.append(player_id)

        if dead:
            async with self._lock:
                for player_id in dead:
                    self._by_room.get(room_id, {}).pop(player_id, None)


async def send_json_safe(ws: WebSocket, payload: dict[str, object]) -> bool:
    try:
        await ws.send_json(payload)
    except Exception:
        logger.debug("Dropping socket after failed send", exc_info=True)
        return False
    return True


hub = RoomWebSocketHub()
