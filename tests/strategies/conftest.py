"""Shared doubles for strategy tests: in-memory exchange, price source, clock."""

import asyncio
from decimal import Decimal

import pytest

from gridmaker.api.exceptions import InsufficientFundsError, NetworkError, OrderError
from gridmaker.api.models import (
    AggregatedPrice,
    Balance,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    OrderType,
    Ticker,
    Trade,
)

# =========================================================================
# Mock Exchange
# =========================================================================


class MockExchange:
    """Simulates the exchange surface the grid engine uses."""

    def __init__(self, balances: dict[str, Balance] | None = None):
        self.balances = (
            balances
            if balances is not None
            else {"USDT": Balance("USDT", free=Decimal("800"), total=Decimal("1000"))}
        )
        self.ticker = Ticker(
            symbol="INDY/USDT",
            last=Decimal("0.42"),
            bid=Decimal("0.44"),
            ask=Decimal("0.46"),
        )
        self.open_orders: dict[str, Order] = {}
        self.created: list[Order] = []
        self.cancelled_ids: list[str] = []
        self.cancel_all_calls: list[str] = []
        self.order_callback = None
        self.stream_connected = False

        # Failure injection
        self.fail_balance = False
        self.fail_cancel_all = False
        self.fail_cancel_ids: set[str] = set()
        self.fail_create_calls: set[int] = set()
        self.create_error: Exception = InsufficientFundsError("insufficient balance")
        self.fill_on_create: set[int] = set()
        self.fail_subscribe = False
        self.fail_ticker = False
        self.create_gate: asyncio.Event | None = None
        self.balance_gate: asyncio.Event | None = None

        self._counter = 0

    async def get_balance(self) -> dict[str, Balance]:
        if self.balance_gate is not None:
            await self.balance_gate.wait()
        if self.fail_balance:
            raise NetworkError("connection reset")
        return dict(self.balances)

    async def create_order(self, symbol, order_type, side, amount, price=None) -> Order:
        self._counter += 1
        call = self._counter
        if self.create_gate is not None:
            await self.create_gate.wait()
        if call in self.fail_create_calls:
            raise self.create_error
        order = Order(
            id=f"MOCK-{call:04d}",
            symbol=symbol,
            type=OrderType(order_type),
            side=OrderSide(side),
            amount=amount,
            price=price,
            remaining=amount,
        )
        self.created.append(order)
        if call in self.fill_on_create:
            order.status = OrderStatus.FILLED
            order.filled = amount
            order.remaining = Decimal("0")
        else:
            self.open_orders[order.id] = order
        return order

    async def cancel_order(self, order_id, symbol) -> None:
        if order_id in self.fail_cancel_ids:
            raise OrderError("unknown order", order_id=order_id)
        self.open_orders.pop(order_id, None)
        self.cancelled_ids.append(order_id)

    async def cancel_all_orders(self, symbol) -> None:
        self.cancel_all_calls.append(symbol)
        if self.fail_cancel_all:
            raise NetworkError("bulk cancel unavailable")
        for order_id in [o.id for o in self.open_orders.values() if o.symbol == symbol]:
            del self.open_orders[order_id]

    async def get_open_orders(self, symbol) -> list[Order]:
        return [o for o in self.open_orders.values() if o.symbol == symbol]

    async def get_ticker(self, symbol) -> Ticker:
        if self.fail_ticker:
            raise NetworkError("ticker timeout")
        return self.ticker

    async def get_order_book(self, symbol) -> OrderBook:
        return OrderBook(symbol=symbol)

    async def get_recent_trades(self, symbol) -> list[Trade]:
        return []

    async def connect_user_data_stream(self) -> None:
        self.stream_connected = True

    async def subscribe_user_orders(self, callback) -> str:
        if self.fail_subscribe:
            raise NetworkError("listen key rejected")
        self.order_callback = callback
        return "sub-1"

    def open_by_side(self, side: str) -> list[Order]:
        return sorted(
            (o for o in self.open_orders.values() if o.side.value == side),
            key=lambda o: o.price,
        )

    def fill(self, order_id: str, status: OrderStatus = OrderStatus.FILLED) -> Order:
        """Build the order event the user data stream would deliver."""
        order = self.open_orders[order_id]
        return Order(
            id=order.id,
            symbol=order.symbol,
            type=order.type,
            side=order.side,
            amount=order.amount,
            price=order.price,
            filled=order.amount,
            remaining=Decimal("0"),
            status=status,
        )


class FakePriceSource:
    def __init__(self, price: str = "0.42", confidence: float = 0.8):
        self.price = Decimal(price)
        self.confidence = confidence
        self.error: Exception | None = None
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def get_token_price(self, symbol: str) -> AggregatedPrice:
        self.calls.append(symbol)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return AggregatedPrice(
            symbol=symbol,
            price=self.price,
            confidence=self.confidence,
            sources=["mock"],
        )


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture
def exchange():
    return MockExchange()


@pytest.fixture
def price_source():
    return FakePriceSource()


@pytest.fixture
def clock():
    return FakeClock()
