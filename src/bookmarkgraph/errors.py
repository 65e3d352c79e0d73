"""Exceptions raised by the graph engine."""

from __future__ import annotations

from enum import Enum


class BookmarkGraphError(Exception):
    """Base exception for bookmark graph operations."""


class ConfigError(BookmarkGraphError):
    """Raised when a GraphConfig (or the settings feeding it) is invalid."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class SkipReason(str, Enum):
    MISSING_IDENTITY = "missing_identity"
    UNDATED = "undated"
    BEFORE_SINCE = "before_since"
    DUPLICATE = "duplicate"


class ItemSkipped(BookmarkGraphError):
    """Raised for a single unusable record; the builder counts it and moves on."""

    def __init__(self, reason: SkipReason, key: str | None = None):
        self.reason = reason
        self.key = key
        super().__init__(f"Item skipped ({reason.value}): {key or '<no key>'}")


class FormatError(BookmarkGraphError):
    """Raised when a format target cannot represent the graph."""
