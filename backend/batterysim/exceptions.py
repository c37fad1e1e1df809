"""Exception types raised by the battery simulation engine."""

from __future__ import annotations


class BatterySimError(Exception):
    """Base class for engine errors surfaced to the caller."""


class ConfigurationError(BatterySimError, ValueError):
    """A battery or pricing configuration value is out of range."""


class IntervalSequenceError(BatterySimError, ValueError):
    """Input interval records are unordered, duplicated, or non-finite."""
