from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from tradingroom.api.models import JoinMessage, TradeMessage, UpdateSettingsMessage
from tradingroom.core import wire
from tradingroom.core.errors import TradeError
from tradingroom.registry import RoomRegistry
from tradingroom.room import Room
from tradingroom.websocket_hub import RoomWebSocketHub, send_json_safe

logger = logging.getLogger(__name__)

DEFAULT_ROOM_ID = "main"


@dataclass(slots=True)
class Session:
    """One connected client: its player id and the room it joined (if any)."""

    player_id: str
    websocket: WebSocket
    room_id: str | None = None


def coerce_quantity(raw: Any) -> int:
    """Floor numeric input to an int; anything else becomes 0 (an invalid quantity)."""

    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(value):
        return 0
    return math.floor(value)


class SessionGateway:
    """Translates wire messages into Room operations and Room output into events.

    Rejections go back to the sender only; state changes are broadcast to the room.
    Actions from a client that has not joined (or whose room is gone) are ignored.
    """

    def __init__(self, *, registry: RoomRegistry, hub: RoomWebSocketHub) -> None:
        self._registry = registry
        self._hub = hub

    async def serve(self, websocket: WebSocket) -> None:
        await websocket.accept()
        session = Session(player_id=uuid4().hex, websocket=websocket)
        logger.debug("Connection %s opened", session.player_id)

        try:
            while True:
                text = await websocket.receive_text()
                await self.handle_text(session, text)
        except WebSocketDisconnect:
            await self.disconnect(session)
        except Exception:
            await self.disconnect(session)
            raise

    async def handle_text(self, session: Session, text: str) -> None:
        try:
            msg = json.loads(text)
        except ValueError:
            await self._reply(session, wire.error("Invalid JSON"))
            return
        if not isinstance(msg, dict):
            await self._reply(session, wire.error("Expected a JSON object"))
            return

        mtype = msg.get("type")
        handler = self._handlers.get(str(mtype))
        if handler is None:
            logger.info("Unknown message type %r from %s", mtype, session.player_id)
            await self._reply(session, wire.error(f"Unknown message type: {mtype}"))
            return

        try:
            await handler(self, session, msg)
        except ValidationError as e:
            await self._reply(session, wire.error(str(e)))

    # ---- handlers ----

    async def _on_join(self, session: Session, msg: dict[str, Any]) -> None:
        req = JoinMessage.model_validate(msg)
        room_id = str(req.room) if req.room not in (None, "") else DEFAULT_ROOM_ID

        if session.room_id is not None:
            await self._leave_current_room(session)

        room = self._registry.open_room(room_id)
        player = room.join(session.player_id, req.name)
        session.room_id = room_id
        await self._hub.attach(room_id, session.player_id, session.websocket)

        await self._reply(
            session,
            wire.event(
                "joined",
                id=session.player_id,
                yourState=player.to_wire(),
                public=room.public_state().to_wire(),
                settings=room.settings.to_wire(),
            ),
        )
        await self._hub.broadcast(room_id, wire.market_update(room.public_state()))

    async def _on_buy(self, session: Session, msg: dict[str, Any]) -> None:
        await self._trade(session, msg, side="buy")

    async def _on_sell(self, session: Session, msg: dict[str, Any]) -> None:
        await self._trade(session, msg, side="sell")

    async def _trade(self, session: Session, msg: dict[str, Any], *, side: str) -> None:
        room = self._current_room(session)
        if room is None:
            return
        req = TradeMessage.model_validate(msg)
        qty = coerce_quantity(req.qty)
        op = room.buy if side == "buy" else room.sell

        try:
            result = op(session.player_id, req.commodity_id, qty)
        except TradeError as e:
            await self._reply(session, wire.action_result(ok=False, message=e.message))
            return

        await self._reply(session, wire.action_result(ok=True, message=result.message, player=result.player))
        await self._hub.broadcast(room.room_id, wire.market_update(room.public_state()))

    async def _on_request_state(self, session: Session, msg: dict[str, Any]) -> None:
        room = self._current_room(session)
        if room is None:
            return
        player = room.player_state(session.player_id)
        if player is None:
            return
        await self._reply(
            session,
            wire.event(
                "state",
                yourState=player.to_wire(),
                public=room.public_state().to_wire(),
                settings=room.settings.to_wire(),
            ),
        )

    async def _on_update_settings(self, session: Session, msg: dict[str, Any]) -> None:
        room = self._current_room(session)
        if room is None:
            return
        req = UpdateSettingsMessage.model_validate(msg)
        settings = self._registry.update_settings(room.room_id, req.settings)
        if settings is None:
            return
        await self._hub.broadcast(room.room_id, wire.settings_updated(settings))
        await self._hub.broadcast(room.room_id, wire.market_update(room.public_state()))

    _handlers = {
        "join": _on_join,
        "buy": _on_buy,
        "sell": _on_sell,
        "requestState": _on_request_state,
        "updateSettings": _on_update_settings,
    }

    # ---- connection lifecycle ----

    async def disconnect(self, session: Session) -> None:
        logger.debug("Connection %s closed", session.player_id)
        if session.room_id is not None:
            await self._leave_current_room(session)

    async def _leave_current_room(self, session: Session) -> None:
        room_id = session.room_id
        session.room_id = None
        if room_id is None:
            return
        await self._hub.detach(room_id, session.player_id)
        room = self._registry.get(room_id)
        if room is None:
            return
        if room.leave(session.player_id):
            await self._hub.broadcast(room_id, wire.market_update(room.public_state()))

    # ---- helpers ----

    def _current_room(self, session: Session) -> Room | None:
        if session.room_id is None:
            return None
        return self._registry.get(session.room_id)

    async def _reply(self, session: Session, payload: dict[str, Any]) -> None:
        await send_json_safe(session.websocket, payload)
