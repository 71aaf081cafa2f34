from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from tradingroom.api.models import (
    DEFAULT_PLAYER_NAME,
    MAX_PLAYER_NAME_LENGTH,
    CatalogEntry,
    Commodity,
    Player,
    PublicPlayer,
    PublicState,
    RoomSettings,
    SettingsUpdate,
)
from tradingroom.core.errors import (
    InsufficientFunds,
    InsufficientInventory,
    InvalidQuantity,
    UnknownCommodity,
    UnknownPlayer,
)
from tradingroom.core.events import GameOverEvent, WinReason
from tradingroom.core.pricing import PriceModel
from tradingroom.fsm import RoomFSM

logger = logging.getLogger(__name__)

# Money mode with an unset target never fires in practice.
_UNREACHABLE_TARGET = 1e12


@dataclass(frozen=True, slots=True)
class TradeResult:
    player: Player
    message: str
    amount: float


def clean_player_name(name: str | None) -> str:
    cleaned = (name or "").strip()[:MAX_PLAYER_NAME_LENGTH].strip()
    return cleaned or DEFAULT_PLAYER_NAME


def _require_quantity(qty: Any) -> int:
    # bool is an int subclass; True is not a quantity.
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise InvalidQuantity()
    return qty


class Room:
    """One independent trading simulation.

    All operations are synchronous and never suspend, so on a single event loop each
    one runs to completion before the next action or tick is processed. Callers do
    their I/O (broadcasts, persistence) before or after, never in between.
    """

    def __init__(
        self,
        *,
        room_id: str,
        catalog: Iterable[CatalogEntry],
        settings: RoomSettings,
        price_model: PriceModel | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.room_id = room_id
        self.commodities: dict[str, Commodity] = {e.id: Commodity.from_catalog(e) for e in catalog}
        # Insertion order == join order; win checks rely on it.
        self.players: dict[str, Player] = {}
        self.settings = settings
        self._price_model = price_model or PriceModel()
        self._clock = clock
        self.created_at = clock()
        self._fsm = RoomFSM()

    # ---- lifecycle ----

    @property
    def is_active(self) -> bool:
        return self._fsm.active.is_active

    @property
    def elapsed_sec(self) -> float:
        return self._clock() - self.created_at

    # ---- players ----

    def join(self, player_id: str, name: str | None) -> Player:
        player = Player(
            id=player_id,
            name=clean_player_name(name),
            cash=round(self.settings.start_money, 2),
            inventory={cid: 0 for cid in self.commodities},
        )
        # A reconnect under the same id always starts over.
        self.players[player_id] = player
        return player.model_copy(deep=True)

    def leave(self, player_id: str) -> bool:
        return self.players.pop(player_id, None) is not None

    def player_state(self, player_id: str) -> Player | None:
        player = self.players.get(player_id)
        return player.model_copy(deep=True) if player is not None else None

    def _require_player(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise UnknownPlayer()
        return player

    def _require_commodity(self, commodity_id: str) -> Commodity:
        commodity = self.commodities.get(commodity_id)
        if commodity is None:
            raise UnknownCommodity()
        return commodity

    # ---- trading ----

    def buy(self, player_id: str, commodity_id: str, qty: Any) -> TradeResult:
        player = self._require_player(player_id)
        qty = _require_quantity(qty)
        commodity = self._require_commodity(commodity_id)

        # Bound qty before it is converted to float for the cost.
        if qty > math.floor(player.cash / commodity.price) + 1:
            raise InsufficientFunds()
        cost = round(commodity.price * qty, 2)
        if player.cash < cost:
            raise InsufficientFunds()

        player.cash = round(player.cash - cost, 2)
        player.inventory[commodity.id] = player.inventory.get(commodity.id, 0) + qty
        return TradeResult(
            player=player.model_copy(deep=True),
            message=f"Gekauft: {qty} x {commodity.name} für {cost:.2f}€",
            amount=cost,
        )

    def sell(self, player_id: str, commodity_id: str, qty: Any) -> TradeResult:
        player = self._require_player(player_id)
        qty = _require_quantity(qty)
        commodity = self._require_commodity(commodity_id)

        if player.inventory.get(commodity.id, 0) < qty:
            raise InsufficientInventory()

        revenue = round(commodity.price * qty, 2)
        player.inventory[commodity.id] -= qty
        player.cash = round(player.cash + revenue, 2)
        return TradeResult(
            player=player.model_copy(deep=True),
            message=f"Verkauft: {qty} x {commodity.name} für {revenue:.2f}€",
            amount=revenue,
        )

    # ---- market ----

    def tick(self) -> PublicState:
        for c in self.commodities.values():
            c.price = self._price_model.next_price(c.price, c.min_price, c.max_price)
        return self.public_state()

    def public_state(self) -> PublicState:
        return PublicState(
            commodities=[c.model_copy() for c in self.commodities.values()],
            players=[PublicPlayer(name=p.name, cash=p.cash) for p in self.players.values()],
        )

    def check_win_condition(self) -> GameOverEvent | None:
        """Return the game-over event if this check ends the round.

        Money mode: the first player in join order at or above the target wins.
        Time mode: once the time target has elapsed, the first player holding the
        strictly highest cash wins. A stopped room never reports a second winner.
        """

        if not self.is_active:
            return None

        s = self.settings
        if s.win_by_money:
            target = s.money_target or _UNREACHABLE_TARGET
            for p in self.players.values():
                if p.cash >= target:
                    return self._finish(p, "money")
            return None

        if self.elapsed_sec < s.time_target_sec:
            return None
        winner: Player | None = None
        for p in self.players.values():
            if winner is None or p.cash > winner.cash:
                winner = p
        if winner is None:
            # Nobody to crown; keep ticking until someone joins.
            return None
        return self._finish(winner, "time")

    def _finish(self, winner: Player, reason: WinReason) -> GameOverEvent:
        self._fsm.finish()
        logger.info("Room %s over: %s wins by %s with %.2f", self.room_id, winner.name, reason, winner.cash)
        return GameOverEvent.now(
            room_id=self.room_id,
            winner_id=winner.id,
            winner_name=winner.name,
            cash=winner.cash,
            reason=reason,
        )

    # ---- settings ----

    def update_settings(self, patch: SettingsUpdate) -> RoomSettings:
        """Merge `patch` over the current settings and reactivate the room."""

        self.settings = self.settings.merged(patch)
        self._fsm.restart()
        return self.settings
