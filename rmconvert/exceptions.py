"""
Exceptions raised while converting a reMarkable bundle.

Every failure is fatal to a run; the CLI maps each class to an exit code.
"""

from __future__ import annotations


class RmConvertError(Exception):
    """Base exception for all conversion errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown conversion error occurred."


class NotFound(RmConvertError):
    """Raised when the input bundle does not exist."""

    @property
    def default_message(self) -> str:
        return "Input bundle not found."


class AmbiguousOrMissingSource(RmConvertError):
    """Raised when the bundle does not hold exactly one original PDF."""

    @property
    def default_message(self) -> str:
        return "Bundle must contain exactly one top-level PDF document."


class GeometryUnavailable(RmConvertError):
    """Raised when a page dimension is neither given nor readable."""

    @property
    def default_message(self) -> str:
        return "Page dimensions could not be determined."


class InvalidStrokeRecord(RmConvertError):
    """Raised when a .rm file cannot be parsed."""

    @property
    def default_message(self) -> str:
        return "Invalid or unsupported stroke record."


class ConversionFailed(RmConvertError):
    """Raised when rasterizing or rendering one page fails."""

    def __init__(self, page_index: int, message: str = "") -> None:
        self.page_index = page_index
        super().__init__(message)

    def __reduce__(self):
        return type(self), (self.page_index, self.message)

    @property
    def default_message(self) -> str:
        return f"Conversion of page {self.page_index} failed."


class PageCountMismatch(RmConvertError):
    """Raised when the assembled overlay has the wrong number of pages."""

    @property
    def default_message(self) -> str:
        return "Assembled overlay page count does not match the original."


class StampFailed(RmConvertError):
    """Raised when the overlay cannot be stamped onto the original."""

    @property
    def default_message(self) -> str:
        return "Stamping the overlay onto the original document failed."


class ConfigError(RmConvertError):
    """Raised for invalid options or configuration files."""

    @property
    def default_message(self) -> str:
        return "Invalid configuration."


class Interrupted(RmConvertError):
    """Raised from a signal handler to unwind a run."""

    def __init__(self, signum: int, message: str = "") -> None:
        self.signum = signum
        super().__init__(message)

    def __reduce__(self):
        return type(self), (self.signum, self.message)

    @property
    def default_message(self) -> str:
        return f"Interrupted by signal {self.signum}."
