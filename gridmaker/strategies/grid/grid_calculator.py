"""
GridLevelGenerator - pure grid level computation.

Builds a symmetric ladder of buy levels below and sell levels above a center
price. Spacing and sizing are pluggable per DynamicGridConfig:

- spacing: linear (base * i), geometric (base * factor^(i-1)), custom offsets
- sizing: flat, pyramidal (tapering away from center), custom weights

Sizes are quote-currency values per level; each level's base quantity is
that value divided by its price, so `notional` equals the sized value.

No I/O, no state. Same inputs always produce the same levels.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import GridConfigurationError

MIN_LEVELS = 1
MAX_LEVELS = 10
DEFAULT_SPACING_FACTOR = Decimal("1.3")


# =============================================================================
# Enums & Data Structures
# =============================================================================


class SpacingModel(str, Enum):
    """How price offsets grow with distance from center."""

    LINEAR = "linear"
    GEOMETRIC = "geometric"
    CUSTOM = "custom"


class SizeModel(str, Enum):
    """How order sizes are distributed across levels."""

    FLAT = "flat"
    PYRAMIDAL = "pyramidal"
    CUSTOM = "custom"


@dataclass(frozen=True)
class GridLevel:
    """A single target order: `index` is the 1-based distance rank from center."""

    index: int
    price: Decimal
    side: str  # 'buy' or 'sell'
    order_size: Decimal

    @property
    def notional(self) -> Decimal:
        return self.price * self.order_size

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "price": str(self.price),
            "side": self.side,
            "order_size": str(self.order_size),
        }


@dataclass
class DynamicGridConfig:
    """
    Level generation parameters.

    `custom_spacings` and `size_weights`, when their model is selected, must
    carry exactly `levels` entries.
    """

    levels: int
    spacing_model: SpacingModel
    base_spacing: Decimal
    size_model: SizeModel
    base_size: Decimal
    spacing_factor: Decimal | None = None
    custom_spacings: list[Decimal] | None = None
    size_weights: list[Decimal] | None = None
    volatility_multiplier: Decimal = Decimal("1.0")
    min_order_value: Decimal = Decimal("0")

    def validate(self) -> None:
        if not MIN_LEVELS <= self.levels <= MAX_LEVELS:
            raise GridConfigurationError(
                f"Grid levels must be between {MIN_LEVELS} and {MAX_LEVELS}, got {self.levels}"
            )
        if self.base_spacing <= 0 or self.base_spacing >= 1:
            raise GridConfigurationError("Base spacing must be between 0 and 1")
        if self.base_size <= 0:
            raise GridConfigurationError("Base size must be positive")
        if self.volatility_multiplier <= 0:
            raise GridConfigurationError("Volatility multiplier must be positive")
        if self.min_order_value < 0:
            raise GridConfigurationError("Minimum order value cannot be negative")

        if self.spacing_model == SpacingModel.GEOMETRIC:
            if self.spacing_factor is not None and self.spacing_factor <= 0:
                raise GridConfigurationError("Spacing factor must be positive")
        elif self.spacing_model == SpacingModel.CUSTOM:
            spacings = self.custom_spacings
            if spacings is None or len(spacings) != self.levels:
                raise GridConfigurationError(
                    f"Custom spacing model requires exactly {self.levels} spacing values"
                )
            if any(s <= 0 or s >= 1 for s in spacings):
                raise GridConfigurationError("Custom spacings must be between 0 and 1")
            if any(b <= a for a, b in zip(spacings, spacings[1:])):
                raise GridConfigurationError("Custom spacings must be in increasing order")

        if self.size_model == SizeModel.CUSTOM:
            weights = self.size_weights
            if weights is None or len(weights) != self.levels:
                raise GridConfigurationError(
                    f"Custom size model requires exactly {self.levels} weight values"
                )
            if any(w <= 0 for w in weights):
                raise GridConfigurationError("Size weights must be positive")

    def with_volatility_multiplier(self, multiplier: Decimal) -> "DynamicGridConfig":
        """Copy of this config with a different spacing multiplier."""
        return DynamicGridConfig(
            levels=self.levels,
            spacing_model=self.spacing_model,
            base_spacing=self.base_spacing,
            size_model=self.size_model,
            base_size=self.base_size,
            spacing_factor=self.spacing_factor,
            custom_spacings=self.custom_spacings,
            size_weights=self.size_weights,
            volatility_multiplier=multiplier,
            min_order_value=self.min_order_value,
        )


# =============================================================================
# Generator
# =============================================================================


class GridLevelGenerator:
    """Stateless grid level computation."""

    @staticmethod
    def legacy_config(
        grid_levels: int,
        grid_spacing: Decimal,
        order_size: Decimal,
        min_order_value: Decimal = Decimal("0"),
    ) -> DynamicGridConfig:
        """Linear spacing with flat sizing, used when no dynamic grid is configured."""
        return DynamicGridConfig(
            levels=grid_levels,
            spacing_model=SpacingModel.LINEAR,
            base_spacing=grid_spacing,
            size_model=SizeModel.FLAT,
            base_size=order_size,
            min_order_value=min_order_value,
        )

    @staticmethod
    def level_spacing(config: DynamicGridConfig, i: int) -> Decimal:
        """Fractional distance from center for level i (1-based), after volatility scaling."""
        if config.spacing_model == SpacingModel.LINEAR:
            spacing = config.base_spacing * i
        elif config.spacing_model == SpacingModel.GEOMETRIC:
            factor = config.spacing_factor or DEFAULT_SPACING_FACTOR
            spacing = config.base_spacing * factor ** (i - 1)
        else:
            spacing = config.custom_spacings[i - 1]  # type: ignore[index]
        return spacing * config.volatility_multiplier

    @staticmethod
    def level_value(config: DynamicGridConfig, i: int) -> Decimal:
        """Quote value for level i (1-based), raised to `min_order_value`."""
        if config.size_model == SizeModel.FLAT:
            value = config.base_size
        elif config.size_model == SizeModel.PYRAMIDAL:
            # 1.0 at the innermost level, 1/levels at the outermost
            weight = Decimal(config.levels - i + 1) / Decimal(config.levels)
            value = config.base_size * weight
        else:
            value = config.base_size * config.size_weights[i - 1]  # type: ignore[index]
        return max(value, config.min_order_value)

    @classmethod
    def generate(cls, center_price: Decimal, config: DynamicGridConfig) -> list[GridLevel]:
        """
        Compute the full grid around a center price.

        Args:
            center_price: Reference price, must be positive.
            config: Level generation parameters.

        Returns:
            2 * config.levels GridLevels sorted ascending by price.

        Raises:
            GridConfigurationError: invalid config, non-positive center price,
                or a spacing that would push a buy level to zero or below.
        """
        if center_price <= 0:
            raise GridConfigurationError(f"Center price must be positive, got {center_price}")
        config.validate()

        levels: list[GridLevel] = []
        for i in range(1, config.levels + 1):
            spacing = cls.level_spacing(config, i)
            if spacing >= 1:
                raise GridConfigurationError(
                    f"Spacing {spacing} at level {i} would produce a non-positive buy price"
                )
            value = cls.level_value(config, i)
            for side, price in (
                ("buy", center_price * (1 - spacing)),
                ("sell", center_price * (1 + spacing)),
            ):
                levels.append(
                    GridLevel(index=i, price=price, side=side, order_size=value / price)
                )

        levels.sort(key=lambda level: level.price)
        return levels
