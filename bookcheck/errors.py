"""Error handling for the bookcheck package."""

from pathlib import Path
from typing import Optional


class BookcheckError(Exception):
    """Base exception for all bookcheck errors."""

    def __init__(self, message: str, path: Optional[Path] = None, line: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.line = line

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is None:
            return message
        if self.line is None:
            return f"{self.path}: {message}"
        return f"{self.path}:{self.line}: {message}"


class ManuscriptNotFoundError(BookcheckError):
    """Exception raised when the manuscript directory does not exist."""
    pass


class ManuscriptParseError(BookcheckError):
    """
    Exception raised when a manuscript document cannot be parsed.

    A broken document is never attributable to a single sample, so this
    error aborts the whole run.
    """
    pass


class ConfigError(BookcheckError):
    """Exception raised when the configuration file is unreadable or malformed."""
    pass


class SampleError(BookcheckError):
    """Base exception for failures owned by a single code sample."""

    def __init__(self, message: str, display_name: str):
        super().__init__(message)
        self.display_name = display_name


class SampleTranspileError(SampleError):
    """Exception raised when a sample cannot be turned into runnable code."""

    def __str__(self) -> str:
        return f"{self.display_name}: {super().__str__()}"
