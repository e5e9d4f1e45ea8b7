"""Validation errors raised by the report services.

All of them derive from ``ValueError`` so the HTTP layer answers them with a
400 the same way it answers malformed uploads.
"""

from __future__ import annotations


class ReportValidationError(ValueError):
    """Base class for client-side validation failures."""


class RangeInvalidError(ReportValidationError):
    """``from`` is not strictly before ``to``."""


class RangeTooLargeError(ReportValidationError):
    """The requested window exceeds the configured maximum span."""


class FilterConflictError(ReportValidationError):
    """Mutually exclusive filters were combined, or a pair was incomplete."""


class DateParseError(ReportValidationError):
    """A date, datetime or timezone name could not be interpreted."""
