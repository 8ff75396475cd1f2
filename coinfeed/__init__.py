"""coinfeed - multi-source crypto market data aggregation."""

__version__ = "0.1.0"
