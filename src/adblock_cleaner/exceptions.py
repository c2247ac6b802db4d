"""
Exception classes for the filter list cleaner.

All exceptions inherit from CleanerError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional

from .enums import ErrorKind


class CleanerError(Exception):
    """Base exception for all filter list cleaner errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InputFileError(CleanerError):
    """Raised when the input filter list is missing or unreadable."""

    pass


class ConfigError(CleanerError):
    """Raised when configuration values are invalid or cannot be loaded."""

    pass


class FetcherStartupError(CleanerError):
    """Raised when the probing engine (browser or HTTP client) fails to start."""

    pass


class OutputWriteError(CleanerError):
    """Raised when a report or the cleaned list cannot be written."""

    pass


class SuffixTableError(CleanerError):
    """Raised when the multi-label suffix table cannot be loaded."""

    pass


class FetchError(CleanerError):
    """
    Raised by page fetch adapters when navigation fails without a response.

    The adapter classifies the failure once; the decision engine only
    looks at ``kind``.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        details: Optional[dict] = None,
    ) -> None:
        super().__init__(code=kind.value, message=message, details=details)
        self.kind = kind
