"""
BaseStrategy - Abstract base class for market-making strategies.

Defines the lifecycle surface every strategy exposes to the launcher:

    idle --initialize--> idle --start--> running --stop--> stopped
                                  \\--(start fails)--> error
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any

import structlog

from gridmaker.api.models import Order

logger = structlog.get_logger(__name__)


class StrategyStatus(str, Enum):
    """Strategy lifecycle status."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class BaseStrategy(ABC):
    """
    Abstract base class for all strategies.

    Lifecycle:
        1. __init__(id) - create with an identifier
        2. initialize(config) - validate and store configuration
        3. start() - place initial orders, begin reacting to events
        4. on_price_update / on_order_update - asynchronous notifications
        5. stop() - cancel resting orders
    """

    strategy_type: str = ""

    def __init__(self, strategy_id: str) -> None:
        self._id = strategy_id
        self._status = StrategyStatus.IDLE
        self._config: Any = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> str:
        return self.strategy_type

    @property
    def current_status(self) -> StrategyStatus:
        return self._status

    @abstractmethod
    async def initialize(self, config: Any) -> None:
        """Validate and store configuration. Raises on invalid config."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Begin trading. Failures propagate to the caller."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop trading. Must always leave the strategy stopped."""
        ...

    @abstractmethod
    async def on_price_update(self, symbol: str, price: Decimal) -> None:
        """Price tick notification. Must never raise."""
        ...

    @abstractmethod
    async def on_order_update(self, order: Order) -> None:
        """Private order stream notification. Must never raise."""
        ...

    def get_status(self) -> dict[str, Any]:
        """Strategy status summary; subclasses extend it."""
        return {
            "id": self.id,
            "type": self.type,
            "status": self._status.value,
        }

    def _set_status(self, status: StrategyStatus) -> None:
        if status != self._status:
            logger.info(
                "Strategy status changed",
                strategy_id=self._id,
                previous=self._status.value,
                current=status.value,
            )
        self._status = status

    def _get_config(self) -> Any:
        if self._config is None:
            raise RuntimeError(f"Strategy {self._id} not initialized")
        return self._config
