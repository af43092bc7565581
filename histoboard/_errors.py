"""Exception types raised by histoboard."""
from __future__ import annotations

from pathlib import Path


class HistogramError(Exception):
    """Base class for all histoboard errors."""


class InvalidRange(HistogramError, ValueError):
    def __init__(self, minimum: float, maximum: float):
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Minimum value must be less than maximum value "
            f"(min={minimum!r}, max={maximum!r})")


class SampleParseError(HistogramError, ValueError):
    def __init__(self, token: str, position: int):
        self.token = token
        self.position = position
        super().__init__(
            f"Invalid number {token!r} at position {position}")


class NotFound(HistogramError, FileNotFoundError):
    def __init__(self, path: str | Path, what: str = "File"):
        self.path = Path(path)
        super().__init__(f"{what} not found: {self.path}")


class InitializationError(HistogramError, RuntimeError):
    pass


class LayoutError(HistogramError, ValueError):
    """A layout document could not be read or written.

    ``path`` names the offending file when one is known.
    """

    def __init__(self, message: str, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)


class InvalidDocument(LayoutError):
    pass


class InvalidFormat(LayoutError):
    pass


class InvalidOperation(LayoutError):
    pass


class FormatUnrecognized(LayoutError):
    pass


class DataFileError(HistogramError, ValueError):
    """A sample data file exists but could not be read as text."""

    def __init__(self, message: str, path: str | Path):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")
