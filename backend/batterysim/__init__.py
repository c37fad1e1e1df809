"""Battery simulation engine for metered solar + grid interval data."""

__version__ = "0.1.0"
