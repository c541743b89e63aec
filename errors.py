"""Exception taxonomy shared by the stores, tasks and API layer."""

from __future__ import annotations


class HistoryError(Exception):
    """Base class for errors raised by the history service."""


class ValidationError(HistoryError, ValueError):
    """Malformed input: missing field, wrong type, invalid enum or range."""


class ConflictError(HistoryError):
    """A daily aggregate already exists for the given tag and date."""


class StorageError(HistoryError):
    """The underlying table could not be read from or written to disk."""
