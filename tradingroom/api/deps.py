from __future__ import annotations

from collections.abc import Generator

import redis

from tradingroom.registry import get_registry


def get_redis() -> Generator[redis.Redis, None, None]:
    # Shares the registry's client; the registry owns its lifecycle.
    yield get_registry().r
