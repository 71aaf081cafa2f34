from __future__ import annotations

from typing import Any

from tradingroom.api.models import Player, PublicState, RoomSettings
from tradingroom.core.events import GameOverEvent


def event(type: str, **payload: Any) -> dict[str, Any]:
    return {"type": type, **payload}


def market_update(public: PublicState) -> dict[str, Any]:
    return event("marketUpdate", **public.to_wire())


def settings_updated(settings: RoomSettings) -> dict[str, Any]:
    return event("settingsUpdated", **settings.to_wire())


def game_over(ev: GameOverEvent) -> dict[str, Any]:
    return event("gameOver", **ev.to_payload())


def action_result(*, ok: bool, message: str, player: Player | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"ok": ok, "message": message}
    if player is not None:
        payload["yourState"] = player.to_wire()
    return event("actionResult", **payload)


def error(message: str) -> dict[str, Any]:
    return event("error", message=message)
