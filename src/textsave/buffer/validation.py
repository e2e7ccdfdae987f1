"""Validation helpers shared across buffer services."""

from __future__ import annotations

from .document import BufferDocument
from .state import Cursor


class BufferValidationError(RuntimeError):
    """Raised when a cursor points outside the document."""

    def __init__(self, message: str, *, cursor: Cursor | None = None) -> None:
        super().__init__(message)
        self.cursor = cursor


def ensure_cursor(document: BufferDocument, cursor: Cursor) -> Cursor:
    row, col = cursor
    if row < 0 or row >= max(document.line_count, 1):
        raise BufferValidationError("Row out of range", cursor=cursor)
    line = document.get_line(row) if document.line_count else ""
    if col < 0 or col > len(line):
        raise BufferValidationError("Column out of range", cursor=cursor)
    return cursor


def clamp_cursor(document: BufferDocument, cursor: Cursor) -> Cursor:
    """Pull ``cursor`` back inside ``document``."""

    if not document.line_count:
        return (0, 0)
    row = min(max(cursor[0], 0), document.line_count - 1)
    col = min(max(cursor[1], 0), len(document.get_line(row)))
    return (row, col)
