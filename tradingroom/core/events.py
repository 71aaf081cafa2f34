from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

WinReason = Literal["money", "time"]


@dataclass(frozen=True, slots=True)
class GameOverEvent:
    room_id: str
    winner_id: str
    winner_name: str
    cash: float
    reason: WinReason
    ts: datetime

    @staticmethod
    def now(*, room_id: str, winner_id: str, winner_name: str, cash: float, reason: WinReason) -> "GameOverEvent":
        return GameOverEvent(
            room_id=room_id,
            winner_id=winner_id,
            winner_name=winner_name,
            cash=cash,
            reason=reason,
            ts=datetime.now(timezone.utc),
        )

    @property
    def timestamp_ms(self) -> int:
        return int(self.ts.timestamp() * 1000)

    def to_payload(self) -> dict[str, Any]:
        return {"winner": self.winner_name, "cash": self.cash, "reason": self.reason}
