"""
Market-Making Strategies Package

Grid strategy plus the factory that builds strategies from launcher parameters.
"""

from gridmaker.strategies.base import BaseStrategy, StrategyStatus
from gridmaker.strategies.grid import GridStrategy

__all__ = [
    "BaseStrategy",
    "StrategyStatus",
    "GridStrategy",
]
