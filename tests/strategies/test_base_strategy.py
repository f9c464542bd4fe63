"""Tests for the BaseStrategy lifecycle surface."""

from decimal import Decimal

import pytest

from gridmaker.api.models import Order
from gridmaker.strategies.base import BaseStrategy, StrategyStatus


class ConcreteStrategy(BaseStrategy):
    """Minimal concrete implementation for testing the ABC."""

    strategy_type = "test"

    async def initialize(self, config):
        self._config = config

    async def start(self):
        self._set_status(StrategyStatus.RUNNING)

    async def stop(self):
        self._set_status(StrategyStatus.STOPPED)

    async def on_price_update(self, symbol: str, price: Decimal) -> None:
        pass

    async def on_order_update(self, order: Order) -> None:
        pass


class TestBaseStrategy:
    def test_cannot_instantiate_abc(self):
        with pytest.raises(TypeError):
            BaseStrategy("x")  # type: ignore[abstract]

    def test_initial_state(self):
        strategy = ConcreteStrategy("s-1")
        assert strategy.id == "s-1"
        assert strategy.type == "test"
        assert strategy.current_status == StrategyStatus.IDLE

    @pytest.mark.asyncio
    async def test_status_transitions(self):
        strategy = ConcreteStrategy("s-1")
        await strategy.start()
        assert strategy.current_status == StrategyStatus.RUNNING
        await strategy.stop()
        assert strategy.get_status() == {"id": "s-1", "type": "test", "status": "stopped"}

    @pytest.mark.asyncio
    async def test_get_config(self):
        strategy = ConcreteStrategy("s-1")
        with pytest.raises(RuntimeError, match="not initialized"):
            strategy._get_config()
        await strategy.initialize({"a": 1})
        assert strategy._get_config() == {"a": 1}
