"""IGridExchange / IPriceSource - Protocols for grid strategy collaborators.

Each venue ships one adapter implementing IGridExchange; the grid engine
never branches on exchange identity. Adapters raise the ExchangeAPIError
subclasses from gridmaker.api.exceptions; RateLimitError.retry_after is
carried into the failure records of a reconciliation pass.

IPriceSource is the confidence-weighted token price service.
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from gridmaker.api.models import (
    AggregatedPrice,
    Balance,
    Order,
    OrderBook,
    Ticker,
    Trade,
)

OrderCallback = Callable[[Order], Any]


@runtime_checkable
class IGridExchange(Protocol):
    """Abstraction for exchange operations used by grid strategy."""

    async def get_balance(self) -> dict[str, Balance]:
        ...

    async def create_order(
        self,
        symbol: str,
        order_type: str,
        side: str,
        amount: Decimal,
        price: Decimal | None = None,
    ) -> Order:
        ...

    async def cancel_order(self, order_id: str, symbol: str) -> None:
        ...

    async def cancel_all_orders(self, symbol: str) -> None:
        ...

    async def get_open_orders(self, symbol: str) -> list[Order]:
        ...

    async def get_ticker(self, symbol: str) -> Ticker:
        ...

    async def get_order_book(self, symbol: str) -> OrderBook:
        ...

    async def get_recent_trades(self, symbol: str) -> list[Trade]:
        ...

    async def connect_user_data_stream(self) -> None:
        ...

    async def subscribe_user_orders(self, callback: OrderCallback) -> str:
        ...


@runtime_checkable
class IPriceSource(Protocol):
    """Confidence-weighted token price provider."""

    async def get_token_price(self, symbol: str) -> AggregatedPrice:
        ...
