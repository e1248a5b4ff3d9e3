"""
Error taxonomy shared by the scheduling core.

Routers translate these into HTTP responses; services raise them and never
swallow store failures.
"""
from __future__ import annotations

from typing import Any


class PaperDrillError(Exception):
    """Base class for errors raised by the review core."""


class ValidationError(PaperDrillError):
    """Malformed input to a core function (e.g. a non-integer session size)."""


class NotFoundError(PaperDrillError):
    """One or more papers are missing or belong to another owner."""

    def __init__(self, ids: list[str], report: Any = None) -> None:
        self.ids = list(ids)
        self.report = report
        super().__init__(f"Paper(s) not found: {', '.join(self.ids)}")


class PersistenceError(PaperDrillError):
    """The underlying store rejected a read or write."""

    def __init__(self, message: str, report: Any = None) -> None:
        self.report = report
        super().__init__(message)
