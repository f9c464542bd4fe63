"""
Market data model shared by exchange adapters and strategies.

Adapters translate venue payloads into these structures; the grid engine
never sees raw exchange responses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


class OrderStatus(str, Enum):
    """Exchange order status as reported by user data streams."""

    OPEN = "open"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


@dataclass
class Order:
    id: str
    symbol: str
    type: OrderType
    side: OrderSide
    amount: Decimal
    price: Decimal | None = None
    filled: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.OPEN
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "type": self.type.value,
            "side": self.side.value,
            "amount": str(self.amount),
            "price": str(self.price) if self.price is not None else None,
            "filled": str(self.filled),
            "remaining": str(self.remaining),
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Balance:
    """Per-asset balance snapshot."""

    asset: str
    free: Decimal
    used: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    available: Decimal | None = None


@dataclass
class Ticker:
    symbol: str
    last: Decimal
    bid: Decimal
    ask: Decimal
    base_volume: Decimal = Decimal("0")
    quote_volume: Decimal | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def mid_price(self) -> Decimal:
        return (self.bid + self.ask) / 2


@dataclass
class OrderBookEntry:
    price: Decimal
    amount: Decimal


@dataclass
class OrderBook:
    symbol: str
    bids: list[OrderBookEntry] = field(default_factory=list)
    asks: list[OrderBookEntry] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Trade:
    id: str
    symbol: str
    side: OrderSide
    amount: Decimal
    price: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    order_id: str | None = None
    fee: Decimal | None = None


@dataclass
class AggregatedPrice:
    """Confidence-weighted price produced by the price aggregation service."""

    symbol: str
    price: Decimal
    confidence: float  # 0.0 - 1.0
    sources: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
