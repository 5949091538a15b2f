"""Bounded random-walk price generator.

Each step multiplies the previous price by (1 + u * max_step_pct) with u
uniform in [-1, 1]. Prices are quantized to 4 decimals and never drop below
the configured floor, so generation cannot fail or go non-positive.
"""

import random
from datetime import datetime, timedelta
from decimal import Decimal

from src.iv_common.datetime_utils import ensure_utc
from src.iv_common.money import quantize_price

_MIN_TICK_SPACING = timedelta(microseconds=1)


class RandomWalkGenerator:
    def __init__(
        self,
        max_step_pct: Decimal,
        floor: Decimal,
        rng: random.Random | None = None,
    ) -> None:
        if max_step_pct < 0 or max_step_pct >= 1:
            raise ValueError(f"max_step_pct must be in [0, 1), got {max_step_pct}")
        if floor <= 0:
            raise ValueError(f"floor must be > 0, got {floor}")
        self._max_step_pct = max_step_pct
        self._floor = floor
        self._rng = rng or random.Random()

    def next_price(self, previous: Decimal | None, starting_price: Decimal) -> Decimal:
        """Next price after previous; seeds from starting_price when there is none."""
        if previous is None:
            return max(quantize_price(starting_price), self._floor)
        # Round the draw to 6 places so Decimal math stays exact and readable.
        draw = Decimal(str(round(self._rng.uniform(-1.0, 1.0), 6)))
        price = quantize_price(previous * (1 + draw * self._max_step_pct))
        return max(price, self._floor)

    @staticmethod
    def next_timestamp(previous: datetime | None, now: datetime) -> datetime:
        """Strictly increasing per instrument even if the wall clock stalls."""
        now = ensure_utc(now)
        if previous is None:
            return now
        previous = ensure_utc(previous)
        return now if now > previous else previous + _MIN_TICK_SPACING
