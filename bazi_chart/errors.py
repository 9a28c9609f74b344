"""
Error taxonomy for the chart engine.

All errors derive from ValueError so callers that only know "bad input"
can keep catching that.
"""


class CalendarError(ValueError):
    """Base class for every failure raised by the engine."""


class InvalidMoment(CalendarError):
    """A date/time that does not exist in the target calendar,
    or a leap-month flag on a lunar year that has no such leap month."""


class OutOfRange(CalendarError):
    """A year outside the supported table era (lunar years 1900-2100)."""


class ContractViolation(CalendarError):
    """A programming error: mismatched stem/branch polarity, an ordinal
    outside 0..59, or a structurally malformed manual-entry value."""
