"""
RiskGuard - Risk checks for grid placement.

Responsibilities:
- Price confidence gate (before any level is generated)
- Safety reserve carved out of the quote balance
- Cumulative notional cap (max_position_size share of spendable balance)
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from gridmaker.api.models import AggregatedPrice, Balance

from .errors import PriceConfidenceError
from .grid_calculator import GridLevel

logger = structlog.get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class RiskConfig:
    """Risk limits applied on every reconciliation pass."""

    max_position_size: Decimal = Decimal("0.8")  # share of spendable balance
    safety_reserve_percentage: Decimal = Decimal("0.2")  # share of total never used
    min_confidence: float = 0.6

    def validate(self) -> None:
        if self.max_position_size <= 0 or self.max_position_size > 1:
            raise ValueError("max_position_size must be between 0 and 1")
        if self.safety_reserve_percentage < 0 or self.safety_reserve_percentage >= 1:
            raise ValueError("safety_reserve_percentage must be between 0 and 1")
        if self.min_confidence < 0 or self.min_confidence > 1:
            raise ValueError("min_confidence must be between 0 and 1")


# =============================================================================
# Risk Check Result
# =============================================================================


@dataclass
class RiskCheckResult:
    """Outcome of validating a candidate grid."""

    accepted: list[GridLevel] = field(default_factory=list)
    rejected: list[GridLevel] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    notional_cap: Decimal = Decimal("0")
    committed_notional: Decimal = Decimal("0")

    @property
    def is_safe(self) -> bool:
        return not self.rejected

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_safe": self.is_safe,
            "accepted": len(self.accepted),
            "rejected": len(self.rejected),
            "reasons": self.reasons,
            "notional_cap": str(self.notional_cap),
            "committed_notional": str(self.committed_notional),
        }


# =============================================================================
# Risk Guard
# =============================================================================


class RiskGuard:
    """Stateless risk evaluation for grid levels."""

    @staticmethod
    def check_price_confidence(price: AggregatedPrice, config: RiskConfig) -> None:
        """Raise PriceConfidenceError when the price sample is below min_confidence."""
        if price.confidence < config.min_confidence:
            raise PriceConfidenceError(price.confidence, config.min_confidence)

    @staticmethod
    def calculate_available_balance(balance: Balance, config: RiskConfig) -> Decimal:
        """
        Spendable quote funds: what is free, capped at the non-reserved share of total.

        Venues that report `available` separately lower `free`. A zero total
        (not reported) leaves only the free figure.
        """
        free = balance.free
        if balance.available is not None:
            free = min(free, balance.available)
        if balance.total > 0:
            free = min(free, balance.total * (1 - config.safety_reserve_percentage))
        return max(free, Decimal("0"))

    @staticmethod
    def notional_cap(available_quote_balance: Decimal, config: RiskConfig) -> Decimal:
        if available_quote_balance <= 0:
            return Decimal("0")
        return available_quote_balance * config.max_position_size

    @classmethod
    def validate(
        cls,
        levels: list[GridLevel],
        available_quote_balance: Decimal,
        config: RiskConfig,
    ) -> RiskCheckResult:
        """
        Accept levels while cumulative notional stays within the cap.

        Levels closest to center are considered first so that, when funds
        run short, the outermost levels are the ones dropped. A rejected
        level does not stop evaluation; a smaller outer level may still fit.

        Args:
            levels: Candidate grid levels.
            available_quote_balance: Spendable quote balance, see
                calculate_available_balance.
            config: Active risk limits.

        Returns:
            RiskCheckResult with accepted levels in ascending price order.
        """
        cap = cls.notional_cap(available_quote_balance, config)
        result = RiskCheckResult(notional_cap=cap)

        by_proximity = sorted(levels, key=lambda lv: (lv.index, lv.side != "buy"))
        committed = Decimal("0")
        for level in by_proximity:
            notional = level.notional
            if committed + notional > cap:
                result.rejected.append(level)
                result.reasons.append(
                    f"{level.side} level {level.index} @ {level.price}: notional {notional} "
                    f"would exceed cap {cap} (committed {committed})"
                )
                continue
            committed += notional
            result.accepted.append(level)

        result.accepted.sort(key=lambda lv: lv.price)
        result.committed_notional = committed

        if result.rejected:
            logger.warning(
                "Grid levels rejected by risk cap",
                rejected=len(result.rejected),
                accepted=len(result.accepted),
                cap=str(cap),
            )
        return result
