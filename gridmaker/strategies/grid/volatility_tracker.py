"""
VolatilityTracker - rolling price range mapped to a grid spacing multiplier.

Volatility is (max - min) / mean over the last `window_size` samples:
- below low_threshold               -> 1.0
- low_threshold .. high_threshold   -> low_multiplier
- at or above high_threshold        -> high_multiplier
"""

from collections import deque
from dataclasses import dataclass
from decimal import Decimal

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class VolatilityTrackerConfig:
    window_size: int = 10
    low_threshold: Decimal = Decimal("0.02")
    high_threshold: Decimal = Decimal("0.05")
    low_multiplier: Decimal = Decimal("1.5")
    high_multiplier: Decimal = Decimal("2.0")

    def validate(self) -> None:
        if self.window_size < 2:
            raise ValueError("window_size must be at least 2")
        if not 0 < self.low_threshold < self.high_threshold:
            raise ValueError("thresholds must satisfy 0 < low_threshold < high_threshold")
        if self.low_multiplier <= 0 or self.high_multiplier <= 0:
            raise ValueError("multipliers must be positive")


class VolatilityTracker:
    def __init__(self, config: VolatilityTrackerConfig | None = None) -> None:
        self._config = config or VolatilityTrackerConfig()
        self._config.validate()
        self._prices: deque[Decimal] = deque(maxlen=self._config.window_size)
        self._last_applied = Decimal("1.0")

    @property
    def buffer_size(self) -> int:
        return len(self._prices)

    @property
    def applied_multiplier(self) -> Decimal:
        return self._last_applied

    def record_price(self, price: Decimal) -> None:
        self._prices.append(price)

    def volatility(self) -> Decimal:
        if len(self._prices) < 2:
            return Decimal("0")
        avg = sum(self._prices) / len(self._prices)
        if avg == 0:
            return Decimal("0")
        return (max(self._prices) - min(self._prices)) / avg

    def multiplier(self) -> Decimal:
        vol = self.volatility()
        if vol >= self._config.high_threshold:
            return self._config.high_multiplier
        if vol >= self._config.low_threshold:
            return self._config.low_multiplier
        return Decimal("1.0")

    def has_multiplier_changed(self) -> bool:
        """
        True once per change: the new multiplier becomes the applied one, so
        repeated calls return False until the regime changes again.
        """
        current = self.multiplier()
        if current == self._last_applied:
            return False
        logger.info(
            "Volatility multiplier changed",
            previous=str(self._last_applied),
            current=str(current),
            volatility=f"{float(self.volatility()):.4f}",
        )
        self._last_applied = current
        return True

    def reset(self) -> None:
        self._prices.clear()
        self._last_applied = Decimal("1.0")
