"""Exchange-facing data model and errors."""

from .exceptions import (
    AuthenticationError,
    ExchangeAPIError,
    ExchangeNotAvailableError,
    InsufficientFundsError,
    InvalidOrderError,
    NetworkError,
    OrderError,
    RateLimitError,
)
from .models import (
    AggregatedPrice,
    Balance,
    Order,
    OrderBook,
    OrderBookEntry,
    OrderSide,
    OrderStatus,
    OrderType,
    Ticker,
    Trade,
)

__all__ = [
    "AggregatedPrice",
    "AuthenticationError",
    "Balance",
    "ExchangeAPIError",
    "ExchangeNotAvailableError",
    "InsufficientFundsError",
    "InvalidOrderError",
    "NetworkError",
    "Order",
    "OrderBook",
    "OrderBookEntry",
    "OrderError",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "RateLimitError",
    "Ticker",
    "Trade",
]
