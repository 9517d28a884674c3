"""Exceptions raised by the layout services."""

from __future__ import annotations


class LayoutError(Exception):
    """Base class for errors the layout services report to callers."""


class DuplicateTaskKeyError(LayoutError, ValueError):
    """Two tasks handed to one layout computation share the same key."""

    def __init__(self, key: int | str) -> None:
        super().__init__(f"Duplicate task key in layout input: {key!r}")
        self.key = key


class UnknownTimezoneError(LayoutError, ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown timezone: {name!r}")
        self.name = name
