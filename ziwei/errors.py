"""
Error types raised by the chart engine and its input adapters.

Every failure is a ChartError (a ValueError), split into two kinds:
bad input caught at the boundary, and broken internal tables.
"""


class ChartError(ValueError):
    """Base class for all chart computation errors."""


class InvalidInput(ChartError):
    """Birth data is structurally malformed (unknown hour key, month 13, ...)."""


class InvariantViolation(ChartError):
    """A lookup table that must be total missed a key."""
