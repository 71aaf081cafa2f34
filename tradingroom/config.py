from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


DEFAULT_TICK_MS = 1000
DEFAULT_START_MONEY = 1000.0
DEFAULT_MONEY_TARGET = 100_000.0
DEFAULT_TIME_TARGET_SEC = 3600


@dataclass(frozen=True, slots=True)
class ServerSettings:
    redis_url: str
    tick_ms: int
    start_money: float
    host: str
    port: int


def _positive_number(raw: str | None, default: float) -> float:
    try:
        value = float(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


def settings_from_env() -> ServerSettings:
    # A local .env never overrides variables already exported by the shell.
    load_dotenv(override=False)
    return ServerSettings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        tick_ms=int(_positive_number(os.environ.get("TICK_MS"), DEFAULT_TICK_MS)),
        start_money=_positive_number(os.environ.get("START_MONEY"), DEFAULT_START_MONEY),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(_positive_number(os.environ.get("PORT"), 3000)),
    )
