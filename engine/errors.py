"""
engine/errors.py — Exceptions raised by the templater.
"""

from __future__ import annotations

from typing import Iterable


class TemplaterError(Exception):
    """Base class for every templater failure."""


class IndexOutOfRangeError(TemplaterError, IndexError):
    """A slide, table, row or column index does not exist in the live tree."""

    def __init__(self, what: str, index: int, count: int) -> None:
        self.what = what
        self.index = index
        self.count = count
        super().__init__(f"{what} index {index} out of range (count={count})")


class SlideNotFoundError(TemplaterError):
    """The slide is not (or no longer) part of the presentation."""


class SlideRemovedError(TemplaterError):
    """A removed slide was used again."""


class TableNotFoundError(TemplaterError):
    """No discoverable table carries the requested tag."""


class UnsupportedImageTypeError(TemplaterError, ValueError):
    """Picture content type is not one the package can hold."""


class ReadOnlyDocumentError(TemplaterError):
    """A write was attempted on a document opened read-only."""


class JobValidationError(TemplaterError, ValueError):
    """Raised when a templating job (JSON data file) is invalid."""

    def __init__(self, issues: Iterable[str]):
        self.issues = [str(i).strip() for i in issues if str(i).strip()]
        if not self.issues:
            self.issues = ["Invalid templating job"]
        super().__init__(self._format())

    def _format(self) -> str:
        lines = ["Templating job validation failed:"]
        for issue in self.issues:
            lines.append(f"- {issue}")
        return "\n".join(lines)
