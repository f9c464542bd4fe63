"""
Grid Strategy Configuration - pydantic schemas with YAML loading.

Provides:
- GridStrategyConfig: full strategy definition (symbol, exchange, grid, risk)
- GridSettings: grid sub-configuration, legacy fields plus optional dynamic grid
- GridProfile: reusable named dynamic grid definition stored in its own file
- DEFAULT_GRID_PARAMS: launcher defaults
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from .grid_calculator import (
    MAX_LEVELS,
    MIN_LEVELS,
    DynamicGridConfig,
    GridLevelGenerator,
    SizeModel,
    SpacingModel,
)
from .grid_order_manager import GridOrderManagerConfig
from .grid_risk_manager import RiskConfig


DEFAULT_GRID_PARAMS: dict[str, Any] = {
    "grid_levels": 5,
    "grid_spacing": "0.02",
    "order_size": "50",
    "min_confidence": 0.6,
    "price_deviation_threshold": "0.015",
    "adjustment_debounce": 2.0,
    "max_position_size": "0.8",
    "safety_reserve_percentage": "0.2",
    "spacing_model": "linear",
    "size_model": "flat",
    "min_order_value": "0",
    "price_poll_interval": 30.0,
    "fill_recheck_delay": 2.0,
}


# =============================================================================
# Dynamic Grid
# =============================================================================


class DynamicGridSchema(BaseModel):
    """Advanced level generation (up to 10 levels per side)."""

    levels: int = Field(..., ge=MIN_LEVELS, le=MAX_LEVELS)
    spacing_model: SpacingModel = SpacingModel.LINEAR
    base_spacing: Decimal = Field(..., gt=0, lt=1)
    spacing_factor: Decimal | None = Field(default=None, gt=0)
    custom_spacings: list[Decimal] | None = None
    size_model: SizeModel = SizeModel.FLAT
    base_size: Decimal = Field(..., gt=0)
    size_weights: list[Decimal] | None = None
    volatility_multiplier: Decimal = Field(default=Decimal("1.0"), gt=0)

    @model_validator(mode="after")
    def validate_model_arrays(self) -> "DynamicGridSchema":
        """Custom models need exactly one entry per level."""
        if self.spacing_model == SpacingModel.CUSTOM:
            if self.custom_spacings is None or len(self.custom_spacings) != self.levels:
                raise ValueError(
                    f"Custom spacing model requires exactly {self.levels} spacing values"
                )
        if self.size_model == SizeModel.CUSTOM:
            if self.size_weights is None or len(self.size_weights) != self.levels:
                raise ValueError(
                    f"Custom size model requires exactly {self.levels} weight values"
                )
        return self

    def to_dynamic_config(self) -> DynamicGridConfig:
        config = DynamicGridConfig(
            levels=self.levels,
            spacing_model=self.spacing_model,
            base_spacing=self.base_spacing,
            size_model=self.size_model,
            base_size=self.base_size,
            spacing_factor=self.spacing_factor,
            custom_spacings=self.custom_spacings,
            size_weights=self.size_weights,
            volatility_multiplier=self.volatility_multiplier,
        )
        config.validate()
        return config


class GridProfile(DynamicGridSchema):
    """A dynamic grid saved to disk so it can be shared between deployments."""

    name: str | None = None
    description: str | None = None


def load_grid_profile(path: str | Path) -> GridProfile:
    """Load a grid profile from a YAML (or JSON) file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Grid profile {path} must contain a mapping")
    return GridProfile(**data)


# =============================================================================
# Strategy Config
# =============================================================================


class RiskSchema(BaseModel):
    """Balance limits for grid placement."""

    max_position_size: Decimal = Field(default=Decimal("0.8"), gt=0, le=1)
    safety_reserve_percentage: Decimal = Field(default=Decimal("0.2"), ge=0, lt=1)


class GridSettings(BaseModel):
    """Grid-specific sub-configuration."""

    grid_levels: int = Field(default=5, ge=MIN_LEVELS, le=MAX_LEVELS)
    grid_spacing: Decimal = Field(default=Decimal("0.02"), gt=0, lt=1)
    order_size: Decimal = Field(
        default=Decimal("50"), gt=0, description="Quote value per level before weighting"
    )
    min_order_value: Decimal = Field(
        default=Decimal("0"), ge=0, description="Venue minimum quote value per order"
    )
    min_confidence: float = Field(default=0.6, ge=0, le=1)
    price_deviation_threshold: Decimal = Field(default=Decimal("0.015"), gt=0, lt=1)
    adjustment_debounce: float = Field(
        default=2.0, ge=0, description="Seconds between price-triggered regrids"
    )
    dynamic_grid: DynamicGridSchema | None = None
    use_exchange_mid_price: bool = Field(
        default=False,
        description="Center fill-triggered regrids on the exchange mid price",
    )
    volatility_tracking: bool = Field(
        default=False,
        description="Scale spacing with observed volatility",
    )
    price_poll_interval: float | None = Field(
        default=30.0,
        gt=0,
        description="Seconds between ticker polls feeding price updates; None disables",
    )
    fill_recheck_delay: float | None = Field(
        default=2.0,
        ge=0,
        description="Seconds before regridding after fills on placement; None disables",
    )

    def to_dynamic_config(self) -> DynamicGridConfig:
        """Dynamic grid when configured, else linear/flat from the legacy fields."""
        if self.dynamic_grid is not None:
            config = self.dynamic_grid.to_dynamic_config()
            config.min_order_value = self.min_order_value
            return config
        return GridLevelGenerator.legacy_config(
            self.grid_levels, self.grid_spacing, self.order_size, self.min_order_value
        )

    def to_order_manager_config(self) -> GridOrderManagerConfig:
        return GridOrderManagerConfig(
            price_deviation_threshold=self.price_deviation_threshold,
            adjustment_debounce=self.adjustment_debounce,
        )


class GridStrategyConfig(BaseModel):
    """
    Complete grid strategy configuration.

    Can be loaded from YAML or built by StrategyFactory.
    """

    id: str = Field(..., min_length=1)
    type: Literal["grid"] = "grid"
    symbol: str = Field(..., pattern=r"^[^/\s]+/[^/\s]+$", description="BASE/QUOTE")
    exchange: str = Field(..., min_length=1)
    account_id: str = "main"
    enabled: bool = True

    grid_config: GridSettings
    risk: RiskSchema = Field(default_factory=RiskSchema)

    @property
    def base_asset(self) -> str:
        return self.symbol.split("/")[0]

    @property
    def quote_asset(self) -> str:
        return self.symbol.split("/")[1]

    def to_risk_config(self) -> RiskConfig:
        return RiskConfig(
            max_position_size=self.risk.max_position_size,
            safety_reserve_percentage=self.risk.safety_reserve_percentage,
            min_confidence=self.grid_config.min_confidence,
        )

    def to_yaml(self) -> str:
        data = self.model_dump(mode="json")
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "GridStrategyConfig":
        data = yaml.safe_load(yaml_str)
        return cls(**data)

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> "GridStrategyConfig":
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**data)
