"""Buffer abstractions consumed by the save layer."""

from .buffer import Buffer, BufferDelta, LineEnding, Transaction
from .document import BufferDocument
from .state import BufferState, Cursor, Selection
from .tracking import LARGE_FILE_THRESHOLD, content_hash, get_mod_time
from .validation import BufferValidationError, clamp_cursor, ensure_cursor

__all__ = [
    "Buffer",
    "BufferDelta",
    "BufferDocument",
    "BufferState",
    "BufferValidationError",
    "Cursor",
    "LARGE_FILE_THRESHOLD",
    "LineEnding",
    "Selection",
    "Transaction",
    "clamp_cursor",
    "content_hash",
    "ensure_cursor",
    "get_mod_time",
]
