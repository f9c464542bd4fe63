"""Grid Strategy Package - level generation, risk guard, order reconciliation."""

from .errors import (
    BalanceUnavailableError,
    ExchangeOperationError,
    GridConfigurationError,
    GridStrategyError,
    PriceConfidenceError,
    StrategyNotInitializedError,
)
from .exchange_protocol import IGridExchange, IPriceSource, OrderCallback
from .grid_calculator import (
    DynamicGridConfig,
    GridLevel,
    GridLevelGenerator,
    SizeModel,
    SpacingModel,
)
from .grid_config import (
    DEFAULT_GRID_PARAMS,
    DynamicGridSchema,
    GridProfile,
    GridSettings,
    GridStrategyConfig,
    RiskSchema,
    load_grid_profile,
)
from .grid_order_manager import GridOrderManager, GridOrderManagerConfig, ReconcileResult
from .grid_risk_manager import RiskCheckResult, RiskConfig, RiskGuard
from .grid_strategy import GridStrategy
from .volatility_tracker import VolatilityTracker, VolatilityTrackerConfig

__all__ = [
    "GridStrategy",
    "GridLevel",
    "GridLevelGenerator",
    "DynamicGridConfig",
    "SpacingModel",
    "SizeModel",
    "GridOrderManager",
    "GridOrderManagerConfig",
    "ReconcileResult",
    "RiskGuard",
    "RiskConfig",
    "RiskCheckResult",
    "VolatilityTracker",
    "VolatilityTrackerConfig",
    "GridStrategyConfig",
    "GridSettings",
    "DynamicGridSchema",
    "GridProfile",
    "RiskSchema",
    "DEFAULT_GRID_PARAMS",
    "load_grid_profile",
    "IGridExchange",
    "IPriceSource",
    "OrderCallback",
    "GridStrategyError",
    "GridConfigurationError",
    "StrategyNotInitializedError",
    "PriceConfidenceError",
    "BalanceUnavailableError",
    "ExchangeOperationError",
]
