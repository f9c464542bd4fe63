"""
GridOrderManager - Live order set and reconciliation for one symbol.

Responsibilities:
- Track which exchange orders belong to the current grid
- Decide when a price move warrants a regrid (deviation + debounce)
- Full-refresh reconciliation: cancel everything tracked, then place targets
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from gridmaker.api.exceptions import RateLimitError
from gridmaker.api.models import OrderType

from .errors import ExchangeOperationError
from .exchange_protocol import IGridExchange
from .grid_calculator import GridLevel

logger = structlog.get_logger(__name__)


def _operation_error(operation: str, error: Exception) -> ExchangeOperationError:
    retry_after = error.retry_after if isinstance(error, RateLimitError) else None
    return ExchangeOperationError(
        operation, str(error), error_type=type(error).__name__, retry_after=retry_after
    )


# =============================================================================
# Configuration & Results
# =============================================================================


@dataclass
class GridOrderManagerConfig:
    """When a live grid is recomputed."""

    price_deviation_threshold: Decimal = Decimal("0.015")
    adjustment_debounce: float = 2.0  # seconds

    def validate(self) -> None:
        if self.price_deviation_threshold <= 0:
            raise ValueError("price_deviation_threshold must be positive")
        if self.adjustment_debounce < 0:
            raise ValueError("adjustment_debounce must not be negative")


@dataclass
class ReconcileResult:
    """What a single reconciliation pass did."""

    cancelled: int = 0
    created: int = 0
    failures: list[ExchangeOperationError] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cancelled": self.cancelled,
            "created": self.created,
            "failed": self.failed,
            "errors": [str(e) for e in self.failures],
        }


# =============================================================================
# Grid Order Manager
# =============================================================================


class GridOrderManager:
    """
    Owns the order_id -> GridLevel mapping for one symbol.

    The mapping is only mutated by reconcile() and clear(); callers serialize
    access (GridStrategy holds a lock around every pass).

    Lifecycle:
        1. should_adjust(price, now) - evaluate a price tick
        2. reconcile(levels, exchange) - cancel tracked, place targets
        3. mark_adjusted(center, now) - record the new center once the pass ends
        4. clear() - on stop
    """

    def __init__(self, symbol: str, config: GridOrderManagerConfig | None = None) -> None:
        self.symbol = symbol
        self._config = config or GridOrderManagerConfig()
        self._config.validate()

        self._live_orders: dict[str, GridLevel] = {}
        self._last_center_price: Decimal | None = None
        self._last_adjustment_timestamp: float | None = None

        # Statistics
        self._passes = 0
        self._total_orders_placed = 0
        self._failed_orders = 0

        logger.info("GridOrderManager created", symbol=symbol)

    @property
    def config(self) -> GridOrderManagerConfig:
        return self._config

    @config.setter
    def config(self, config: GridOrderManagerConfig) -> None:
        config.validate()
        self._config = config

    @property
    def live_orders(self) -> dict[str, GridLevel]:
        """Read-only copy of the live order mapping."""
        return dict(self._live_orders)

    @property
    def last_center_price(self) -> Decimal | None:
        return self._last_center_price

    @property
    def last_adjustment_timestamp(self) -> float | None:
        return self._last_adjustment_timestamp

    # =================================================================
    # Trigger Policy
    # =================================================================

    def price_deviation(self, new_price: Decimal) -> Decimal | None:
        if not self._last_center_price:
            return None
        return abs(new_price - self._last_center_price) / self._last_center_price

    def debounce_elapsed(self, now: float) -> bool:
        if self._last_adjustment_timestamp is None:
            return True
        return now - self._last_adjustment_timestamp >= self._config.adjustment_debounce

    def should_adjust(self, new_price: Decimal, now: float) -> bool:
        """
        True iff the price moved more than the deviation threshold away from
        the last center AND the debounce window has elapsed.

        With no recorded center (grid never placed) any price qualifies.
        """
        deviation = self.price_deviation(new_price)
        if deviation is None:
            return True
        return deviation > self._config.price_deviation_threshold and self.debounce_elapsed(now)

    def mark_adjusted(self, center_price: Decimal, now: float) -> None:
        self._last_center_price = center_price
        self._last_adjustment_timestamp = now

    # =================================================================
    # Reconciliation
    # =================================================================

    async def reconcile(
        self, target_levels: list[GridLevel], exchange: IGridExchange
    ) -> ReconcileResult:
        """
        Bring the exchange in line with target_levels.

        All cancellations happen before any creation. Individual failures are
        logged and recorded on the result; they never abort the pass.
        """
        result = ReconcileResult()
        self._passes += 1

        if self._live_orders:
            result.cancelled = await self._cancel_tracked(exchange, result)

        new_orders: dict[str, GridLevel] = {}
        self._live_orders = new_orders

        for level in target_levels:
            try:
                order = await exchange.create_order(
                    self.symbol,
                    OrderType.LIMIT.value,
                    level.side,
                    level.order_size,
                    level.price,
                )
            except Exception as e:
                error = _operation_error("create_order", e)
                result.failures.append(error)
                self._failed_orders += 1
                logger.error(
                    "Failed to place grid order",
                    symbol=self.symbol,
                    side=level.side,
                    price=str(level.price),
                    size=str(level.order_size),
                    error=str(e),
                    error_type=error.error_type,
                    retry_after=error.retry_after,
                )
                continue

            new_orders[order.id] = level
            result.created += 1
            self._total_orders_placed += 1
            logger.debug(
                "Grid order placed",
                order_id=order.id,
                side=level.side,
                price=str(level.price),
                size=str(level.order_size),
            )

        logger.info(
            "Grid reconciled",
            symbol=self.symbol,
            cancelled=result.cancelled,
            created=result.created,
            failed=result.failed,
        )
        return result

    async def _cancel_tracked(self, exchange: IGridExchange, result: ReconcileResult) -> int:
        """Bulk cancel, falling back to per-order cancellation."""
        tracked = list(self._live_orders)
        try:
            await exchange.cancel_all_orders(self.symbol)
            return len(tracked)
        except Exception as e:
            logger.warning(
                "Bulk cancellation failed, falling back to individual cancellation",
                symbol=self.symbol,
                error=str(e),
            )

        cancelled = 0
        for order_id in tracked:
            try:
                await exchange.cancel_order(order_id, self.symbol)
                cancelled += 1
            except Exception as e:
                error = _operation_error("cancel_order", e)
                result.failures.append(error)
                logger.error(
                    "Failed to cancel grid order",
                    symbol=self.symbol,
                    order_id=order_id,
                    error=str(e),
                    error_type=error.error_type,
                    retry_after=error.retry_after,
                )
        return cancelled

    def clear(self) -> None:
        """Forget tracked orders and trigger state."""
        self._live_orders = {}
        self._last_center_price = None
        self._last_adjustment_timestamp = None

    # =================================================================
    # Query Methods
    # =================================================================

    def get_statistics(self) -> dict[str, Any]:
        levels = self._live_orders.values()
        return {
            "symbol": self.symbol,
            "live_orders": len(self._live_orders),
            "live_buys": sum(1 for lv in levels if lv.side == "buy"),
            "live_sells": sum(1 for lv in levels if lv.side == "sell"),
            "passes": self._passes,
            "total_orders_placed": self._total_orders_placed,
            "failed_orders": self._failed_orders,
            "last_center_price": (
                str(self._last_center_price) if self._last_center_price is not None else None
            ),
            "price_deviation_threshold": str(self._config.price_deviation_threshold),
            "adjustment_debounce": self._config.adjustment_debounce,
        }
