"""
StrategyFactory - builds ready-to-start strategies from launcher parameters.

Launcher parameters are flat (what a CLI or a YAML launcher file provides);
the factory fills defaults, resolves grid profiles, and returns an
initialized strategy with its collaborators attached.
"""

import time
from decimal import Decimal
from pathlib import Path

import structlog
from pydantic import BaseModel, ValidationError

from gridmaker.strategies.base import BaseStrategy
from gridmaker.strategies.grid.errors import GridConfigurationError
from gridmaker.strategies.grid.exchange_protocol import IGridExchange, IPriceSource
from gridmaker.strategies.grid.grid_calculator import SizeModel, SpacingModel
from gridmaker.strategies.grid.grid_config import (
    DEFAULT_GRID_PARAMS,
    DynamicGridSchema,
    GridSettings,
    GridStrategyConfig,
    RiskSchema,
    load_grid_profile,
)
from gridmaker.strategies.grid.grid_strategy import GridStrategy

logger = structlog.get_logger(__name__)

SUPPORTED_STRATEGIES = ("grid",)


class GridLauncherParams(BaseModel):
    """Flat grid parameters; unset fields fall back to DEFAULT_GRID_PARAMS."""

    grid_levels: int = DEFAULT_GRID_PARAMS["grid_levels"]
    grid_spacing: Decimal = Decimal(DEFAULT_GRID_PARAMS["grid_spacing"])
    order_size: Decimal = Decimal(DEFAULT_GRID_PARAMS["order_size"])
    min_confidence: float = DEFAULT_GRID_PARAMS["min_confidence"]
    price_deviation_threshold: Decimal = Decimal(DEFAULT_GRID_PARAMS["price_deviation_threshold"])
    adjustment_debounce: float = DEFAULT_GRID_PARAMS["adjustment_debounce"]
    max_position_size: Decimal = Decimal(DEFAULT_GRID_PARAMS["max_position_size"])
    safety_reserve_percentage: Decimal = Decimal(DEFAULT_GRID_PARAMS["safety_reserve_percentage"])
    min_order_value: Decimal = Decimal(DEFAULT_GRID_PARAMS["min_order_value"])

    spacing_model: SpacingModel = SpacingModel(DEFAULT_GRID_PARAMS["spacing_model"])
    spacing_factor: Decimal | None = None
    custom_spacings: list[Decimal] | None = None
    size_model: SizeModel = SizeModel(DEFAULT_GRID_PARAMS["size_model"])
    size_weights: list[Decimal] | None = None
    grid_profile_path: Path | None = None

    use_exchange_mid_price: bool = False
    volatility_tracking: bool = False
    price_poll_interval: float | None = DEFAULT_GRID_PARAMS["price_poll_interval"]
    fill_recheck_delay: float | None = DEFAULT_GRID_PARAMS["fill_recheck_delay"]


def normalize_symbol(symbol: str) -> str:
    """'indy-usdt', 'INDY_USDT' and 'INDY/USDT' all become 'INDY/USDT'."""
    normalized = symbol.strip().upper().replace("-", "/").replace("_", "/")
    if normalized.count("/") != 1:
        raise GridConfigurationError(f"Symbol must look like BASE/QUOTE, got {symbol!r}")
    return normalized


class StrategyFactory:
    """Creates initialized strategies for a given exchange."""

    @classmethod
    async def create(
        cls,
        strategy: str,
        exchange_name: str,
        symbol: str,
        exchange: IGridExchange,
        price_source: IPriceSource,
        params: GridLauncherParams | None = None,
    ) -> BaseStrategy:
        if strategy.lower() not in SUPPORTED_STRATEGIES:
            raise GridConfigurationError(
                f"Unsupported strategy: {strategy}. Supported: {', '.join(SUPPORTED_STRATEGIES)}"
            )
        return await cls.create_grid_strategy(
            exchange_name, symbol, exchange, price_source, params
        )

    @classmethod
    async def create_grid_strategy(
        cls,
        exchange_name: str,
        symbol: str,
        exchange: IGridExchange,
        price_source: IPriceSource,
        params: GridLauncherParams | None = None,
    ) -> GridStrategy:
        params = params or GridLauncherParams()
        config = cls.build_grid_config(exchange_name, symbol, params)

        strategy = GridStrategy(config.id, price_source=price_source)
        strategy.set_exchange_connector(exchange)
        await strategy.initialize(config)

        logger.info(
            "Grid strategy created",
            strategy_id=config.id,
            exchange=exchange_name,
            symbol=config.symbol,
        )
        return strategy

    @staticmethod
    def build_grid_config(
        exchange_name: str, symbol: str, params: GridLauncherParams
    ) -> GridStrategyConfig:
        normalized = normalize_symbol(symbol)
        try:
            return StrategyFactory._build_grid_config(exchange_name, normalized, params)
        except ValidationError as e:
            raise GridConfigurationError(f"Invalid grid launcher parameters: {e}") from e

    @staticmethod
    def _build_grid_config(
        exchange_name: str, normalized: str, params: GridLauncherParams
    ) -> GridStrategyConfig:
        if params.grid_profile_path is not None:
            profile = load_grid_profile(params.grid_profile_path)
            dynamic = DynamicGridSchema(**profile.model_dump(exclude={"name", "description"}))
            logger.info("Grid profile loaded", profile=profile.name, path=str(params.grid_profile_path))
        else:
            dynamic = DynamicGridSchema(
                levels=params.grid_levels,
                spacing_model=params.spacing_model,
                base_spacing=params.grid_spacing,
                spacing_factor=params.spacing_factor,
                custom_spacings=params.custom_spacings,
                size_model=params.size_model,
                base_size=params.order_size,
                size_weights=params.size_weights,
            )

        return GridStrategyConfig(
            id=f"grid-{normalized.replace('/', '')}-{int(time.time() * 1000)}",
            symbol=normalized,
            exchange=exchange_name,
            grid_config=GridSettings(
                grid_levels=dynamic.levels,
                grid_spacing=dynamic.base_spacing,
                order_size=dynamic.base_size,
                min_order_value=params.min_order_value,
                min_confidence=params.min_confidence,
                price_deviation_threshold=params.price_deviation_threshold,
                adjustment_debounce=params.adjustment_debounce,
                dynamic_grid=dynamic,
                use_exchange_mid_price=params.use_exchange_mid_price,
                volatility_tracking=params.volatility_tracking,
                price_poll_interval=params.price_poll_interval,
                fill_recheck_delay=params.fill_recheck_delay,
            ),
            risk=RiskSchema(
                max_position_size=params.max_position_size,
                safety_reserve_percentage=params.safety_reserve_percentage,
            ),
        )
