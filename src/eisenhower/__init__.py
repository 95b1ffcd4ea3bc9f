"""Eisenhower matrix task prioritisation with a focus timer."""

__version__ = "2.0.0"
