"""Grid engine error taxonomy.

Synchronous entry points (initialize, start) raise these; event handlers
catch and log them.
"""


class GridStrategyError(Exception):
    """Base class for grid engine failures."""


class GridConfigurationError(GridStrategyError, ValueError):
    """Missing or malformed grid configuration."""


class StrategyNotInitializedError(GridStrategyError):
    """Strategy used before config and exchange connector are in place."""


class PriceConfidenceError(GridStrategyError):
    """Aggregated price is not trustworthy enough to build a grid around."""

    def __init__(self, confidence: float, min_confidence: float) -> None:
        super().__init__(f"Price confidence too low: {confidence} < {min_confidence}")
        self.confidence = confidence
        self.min_confidence = min_confidence


class BalanceUnavailableError(GridStrategyError):
    """Quote balance could not be fetched or is missing from the snapshot."""


class ExchangeOperationError(GridStrategyError):
    """A create/cancel call was rejected by the exchange."""

    def __init__(
        self,
        operation: str,
        message: str,
        error_type: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.error_type = error_type
        self.retry_after = retry_after  # seconds, when the venue throttled the call
