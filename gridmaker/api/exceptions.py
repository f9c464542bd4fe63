"""Errors raised by exchange adapters.

Adapters translate venue error codes into these; the grid engine wraps them
in ExchangeOperationError when a create or cancel call fails.
"""


class ExchangeAPIError(Exception):
    """Base class for venue failures; `exchange` names the venue when known."""

    def __init__(self, message: str, exchange: str | None = None) -> None:
        super().__init__(message)
        self.exchange = exchange


class RateLimitError(ExchangeAPIError):
    """Venue throttled the request."""

    def __init__(
        self, message: str, exchange: str | None = None, retry_after: float | None = None
    ) -> None:
        super().__init__(message, exchange)
        self.retry_after = retry_after


class AuthenticationError(ExchangeAPIError):
    """API key, secret or passphrase rejected."""


class InsufficientFundsError(ExchangeAPIError):
    """Not enough free balance to place the order."""


class OrderError(ExchangeAPIError):
    """Order placement or cancellation rejected by the venue."""

    def __init__(
        self, message: str, order_id: str | None = None, exchange: str | None = None
    ) -> None:
        super().__init__(message, exchange)
        self.order_id = order_id


class InvalidOrderError(OrderError):
    """Order parameters violate venue rules (size, tick, min notional)."""


class NetworkError(ExchangeAPIError):
    """Transport failure talking to the venue (REST or websocket)."""


class ExchangeNotAvailableError(ExchangeAPIError):
    """Venue in maintenance or otherwise not accepting requests."""
