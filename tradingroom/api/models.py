from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from tradingroom.config import (
    DEFAULT_MONEY_TARGET,
    DEFAULT_TIME_TARGET_SEC,
    ServerSettings,
)


DEFAULT_PLAYER_NAME = "Spieler"
MAX_PLAYER_NAME_LENGTH = 30


class WireModel(BaseModel):
    """Base for everything that crosses the wire.

    Python attributes are snake_case; JSON keys are camelCase to match the browser client.
    """

    # inf/nan never make sense for prices, cash or settings.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CatalogEntry(WireModel):
    id: str = Field(..., min_length=1)
    name: str
    min_price: float = Field(..., gt=0)
    max_price: float = Field(..., gt=0)
    base_price: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "CatalogEntry":
        if self.min_price >= self.max_price:
            raise ValueError(f"min_price must be below max_price for commodity {self.id!r}")
        return self


class Commodity(WireModel):
    id: str
    name: str
    price: float
    min_price: float = Field(..., alias="min")
    max_price: float = Field(..., alias="max")

    @staticmethod
    def from_catalog(entry: CatalogEntry) -> "Commodity":
        # The base price seeds the walk; keep it inside the bounds from the start.
        price = min(entry.max_price, max(entry.min_price, entry.base_price))
        return Commodity(
            id=entry.id,
            name=entry.name,
            price=round(price, 2),
            min_price=entry.min_price,
            max_price=entry.max_price,
        )


class Player(WireModel):
    id: str
    name: str
    cash: float
    # commodity id -> held quantity; every commodity of the room has an entry.
    inventory: dict[str, int] = Field(default_factory=dict)


class PublicPlayer(WireModel):
    name: str
    cash: float


class PublicState(WireModel):
    """What every participant of a room may see: prices and name/cash, never inventories."""

    commodities: list[Commodity]
    players: list[PublicPlayer]


class RoomSettings(WireModel):
    tick_ms: int = Field(..., gt=0)
    start_money: float = Field(..., gt=0)
    win_by_money: bool = True
    money_target: float = Field(DEFAULT_MONEY_TARGET, gt=0)
    time_target_sec: float = Field(DEFAULT_TIME_TARGET_SEC, gt=0)

    @staticmethod
    def defaults(server: ServerSettings) -> "RoomSettings":
        return RoomSettings(tick_ms=server.tick_ms, start_money=server.start_money)

    def merged(self, patch: "SettingsUpdate") -> "RoomSettings":
        """Apply a partial update.

        Zero, negative and missing numbers keep the previous value, so a `tickMs` of 0
        cannot be set. `winByMoney` is taken whenever it is present.
        """

        return RoomSettings(
            tick_ms=int(patch.tick_ms) if patch.tick_ms and patch.tick_ms >= 1 else self.tick_ms,
            start_money=_positive_or(patch.start_money, self.start_money),
            win_by_money=self.win_by_money if patch.win_by_money is None else patch.win_by_money,
            money_target=_positive_or(patch.money_target, self.money_target),
            time_target_sec=_positive_or(patch.time_target_sec, self.time_target_sec),
        )


def _positive_or(value: float | None, fallback: float) -> float:
    return value if value and value > 0 else fallback


class SettingsUpdate(WireModel):
    tick_ms: float | None = None
    start_money: float | None = None
    win_by_money: bool | None = None
    money_target: float | None = None
    time_target_sec: float | None = None


class HighscoreEntry(WireModel):
    player_name: str
    cash: float
    # epoch milliseconds
    timestamp: int


# ---- incoming wire messages ----


class JoinMessage(WireModel):
    name: str | None = None
    room: str | int | None = None


class TradeMessage(WireModel):
    commodity_id: str = ""
    # Coerced by the gateway; anything non-numeric ends up as an invalid quantity.
    qty: Any = None


class UpdateSettingsMessage(WireModel):
    settings: SettingsUpdate = Field(default_factory=SettingsUpdate)
