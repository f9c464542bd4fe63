"""Grid market-making engine."""

__version__ = "1.0.0"
