"""Exception types raised by the chord engine."""

from typing import Optional


class ChordChartError(Exception):
    """Base class for all chordchart errors."""


class ChordParseError(ChordChartError, ValueError):
    """A token cannot be a chord (it does not start with a root letter)."""

    def __init__(self, token: str, reason: Optional[str] = None):
        self.token = token
        self.reason = reason or "chord symbols must start with a root letter A-G"
        super().__init__(f"Cannot parse chord {token!r}: {self.reason}")


class ConversionError(ChordChartError):
    """A notation conversion request cannot be carried out."""


class KeyRequiredError(ConversionError):
    """Nashville conversion was requested without a usable key."""

    def __init__(self, message: str = "A key is required for Nashville number conversion"):
        super().__init__(message)


class UnsupportedPatternError(ConversionError):
    """A mixed document cannot be normalized unambiguously."""

    def __init__(self, message: str, line_range: Optional[tuple] = None):
        self.line_range = line_range
        super().__init__(message)
