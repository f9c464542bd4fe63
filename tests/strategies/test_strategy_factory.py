"""Tests for StrategyFactory and launcher parameter handling."""

from decimal import Decimal

import pytest

from gridmaker.strategies.base import StrategyStatus
from gridmaker.strategies.factory import GridLauncherParams, StrategyFactory, normalize_symbol
from gridmaker.strategies.grid.errors import GridConfigurationError
from gridmaker.strategies.grid.grid_calculator import SizeModel, SpacingModel
from gridmaker.strategies.grid.grid_strategy import GridStrategy

# =========================================================================
# Symbol Normalization Tests
# =========================================================================


class TestNormalizeSymbol:
    @pytest.mark.parametrize("raw", ["INDY/USDT", "indy-usdt", "Indy_Usdt", " indy/usdt "])
    def test_variants(self, raw):
        assert normalize_symbol(raw) == "INDY/USDT"

    @pytest.mark.parametrize("raw", ["INDYUSDT", "A/B/C", "a-b_c"])
    def test_invalid(self, raw):
        with pytest.raises(GridConfigurationError, match="BASE/QUOTE"):
            normalize_symbol(raw)


# =========================================================================
# Config Building Tests
# =========================================================================


class TestBuildGridConfig:
    def test_defaults(self):
        config = StrategyFactory.build_grid_config("binance", "indy-usdt", GridLauncherParams())

        assert config.symbol == "INDY/USDT"
        assert config.exchange == "binance"
        assert config.id.startswith("grid-INDYUSDT-")
        grid = config.grid_config
        assert grid.grid_levels == 5
        assert grid.grid_spacing == Decimal("0.02")
        assert grid.order_size == Decimal("50")
        assert grid.min_confidence == 0.6
        assert grid.price_deviation_threshold == Decimal("0.015")
        assert grid.adjustment_debounce == 2.0
        assert config.risk.max_position_size == Decimal("0.8")
        assert config.risk.safety_reserve_percentage == Decimal("0.2")
        assert grid.min_order_value == Decimal("0")
        assert grid.price_poll_interval == 30.0
        assert grid.fill_recheck_delay == 2.0

    def test_dynamic_params(self):
        params = GridLauncherParams(
            grid_levels=4,
            spacing_model=SpacingModel.GEOMETRIC,
            spacing_factor=Decimal("1.5"),
            size_model=SizeModel.PYRAMIDAL,
        )
        config = StrategyFactory.build_grid_config("kucoin", "INDY/USDT", params)
        dynamic = config.grid_config.to_dynamic_config()
        assert dynamic.levels == 4
        assert dynamic.spacing_model == SpacingModel.GEOMETRIC
        assert dynamic.spacing_factor == Decimal("1.5")
        assert dynamic.size_model == SizeModel.PYRAMIDAL

    def test_invalid_params_wrapped(self):
        with pytest.raises(GridConfigurationError, match="Invalid grid launcher parameters"):
            StrategyFactory.build_grid_config(
                "binance", "INDY/USDT", GridLauncherParams(grid_levels=11)
            )

    def test_profile_overrides_grid_params(self, tmp_path):
        path = tmp_path / "tight.yaml"
        path.write_text(
            "name: tight\n"
            "levels: 2\n"
            "spacing_model: custom\n"
            "base_spacing: '0.005'\n"
            "custom_spacings: ['0.005', '0.01']\n"
            "base_size: '200'\n"
        )
        params = GridLauncherParams(grid_levels=7, grid_profile_path=path)

        config = StrategyFactory.build_grid_config("binance", "INDY/USDT", params)

        assert config.grid_config.grid_levels == 2
        assert config.grid_config.order_size == Decimal("200")
        dynamic = config.grid_config.to_dynamic_config()
        assert dynamic.custom_spacings == [Decimal("0.005"), Decimal("0.01")]


# =========================================================================
# Creation Tests
# =========================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_grid(self, exchange, price_source):
        strategy = await StrategyFactory.create(
            "grid", "binance", "indy_usdt", exchange, price_source
        )
        assert isinstance(strategy, GridStrategy)
        assert strategy.symbol == "INDY/USDT"
        assert strategy.current_status == StrategyStatus.IDLE

        await strategy.start()
        assert len(exchange.open_orders) == 10
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_unsupported_strategy(self, exchange, price_source):
        with pytest.raises(GridConfigurationError, match="Unsupported strategy: dca"):
            await StrategyFactory.create("dca", "binance", "INDY/USDT", exchange, price_source)

    @pytest.mark.asyncio
    async def test_custom_params(self, exchange, price_source):
        params = GridLauncherParams(grid_levels=3, order_size=Decimal("10"))
        strategy = await StrategyFactory.create_grid_strategy(
            "binance", "INDY/USDT", exchange, price_source, params
        )
        await strategy.start()
        assert len(exchange.created) == 6
        notionals = [o.price * o.amount for o in exchange.created]
        assert all(abs(n - Decimal("10")) < Decimal("1e-20") for n in notionals)
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_min_order_value_and_background_settings(self, exchange, price_source):
        params = GridLauncherParams(
            grid_levels=2,
            order_size=Decimal("1"),
            min_order_value=Decimal("5"),
            price_poll_interval=None,
            fill_recheck_delay=None,
        )
        strategy = await StrategyFactory.create_grid_strategy(
            "binance", "INDY/USDT", exchange, price_source, params
        )
        await strategy.start()

        assert all(o.price * o.amount > Decimal("4.99") for o in exchange.created)
        assert strategy._price_monitor_task is None
        assert strategy._recheck_task is None
        await strategy.stop()
