"""Cursor and selection state for buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Cursor = Tuple[int, int]  # (row, column)
Selection = Tuple[Cursor, Cursor]


@dataclass(slots=True)
class BufferState:
    """Mutable cursors + selection tied to a BufferDocument version.

    ``cursors[0]`` is the primary cursor; extra entries come from multi-cursor
    editing.
    """

    cursors: List[Cursor] = field(default_factory=lambda: [(0, 0)])
    selection: Optional[Selection] = None

    @property
    def cursor(self) -> Cursor:
        return self.cursors[0]

    def set_cursor(self, row: int, col: int) -> None:
        self.cursors[0] = (row, col)

    def add_cursor(self, row: int, col: int) -> None:
        self.cursors.append((row, col))

    def set_selection(self, start: Cursor, end: Cursor) -> None:
        self.selection = (start, end)
