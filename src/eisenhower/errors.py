"""Import failures surfaced to the caller as a single exception type."""

from __future__ import annotations


class ReconcileError(ValueError):
    """Base class for every import failure. The collection is left untouched."""


class ParseError(ReconcileError):
    """Raw text is not valid JSON even after trailing-comma repair."""


class ShapeError(ReconcileError):
    """Valid JSON, but not an object of one of the recognised shapes."""


class ValidationError(ReconcileError):
    """A field cannot be normalised and has no sensible default."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
