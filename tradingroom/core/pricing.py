from __future__ import annotations

import random


VOLATILITY_FACTOR = 0.12
MIN_VOLATILITY = 1.0


def volatility(min_price: float, max_price: float) -> float:
    return max(MIN_VOLATILITY, (max_price - min_price) * VOLATILITY_FACTOR)


class PriceModel:
    """Bounded random walk for a single commodity price.

    Each step draws a uniform perturbation in [-v/2, +v/2] where v is the commodity's
    volatility, rounds to cents and clamps into [min_price, max_price].
    Pass a seeded `random.Random` for reproducible walks.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def next_price(self, current: float, min_price: float, max_price: float) -> float:
        change = (self._rng.random() - 0.5) * volatility(min_price, max_price)
        new_price = round(current + change, 2)
        return min(max_price, max(min_price, new_price))
