"""High-level buffer façade combining document, state, and persistence fields."""

from __future__ import annotations

import codecs
import os
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, ContextManager, List, Optional

from textsave.runtime import telemetry
from textsave.settings import BufferSettings, GlobalSettings

from .document import INTERNAL_ERRORS, BufferDocument
from .state import BufferState, Cursor
from .tracking import content_hash, exceeds_threshold, get_mod_time
from .validation import clamp_cursor, ensure_cursor

if TYPE_CHECKING:
    from textsave.save.orchestrator import SaveOutcome

RuleHook = Callable[["Buffer"], None]

# Unicode White_Space; excludes the U+001C..U+001F separators str.isspace() accepts.
WHITESPACE = (
    "\t\n\x0b\x0c\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)


class LineEnding(str, Enum):
    """Terminator written between serialized lines."""

    UNIX = "unix"
    DOS = "dos"

    @property
    def eol(self) -> bytes:
        return b"\r\n" if self is LineEnding.DOS else b"\n"


@dataclass(slots=True)
class BufferDelta:
    version: int
    cursor: Cursor
    label: str


class Buffer:
    def __init__(
        self,
        *,
        name: str = "default",
        document: Optional[BufferDocument] = None,
        state: Optional[BufferState] = None,
        settings: Optional[BufferSettings] = None,
        path: str = "",
        endings: LineEnding = LineEnding.UNIX,
        scratch: bool = False,
    ) -> None:
        self.name = name
        self.document = document or BufferDocument()
        self.state = state or BufferState()
        self.settings = settings or BufferSettings()
        self.path = path
        self.abs_path = os.path.abspath(os.path.expanduser(path)) if path else ""
        self.endings = endings
        self.scratch = scratch
        self.orig_hash: Optional[bytes] = None
        self.mod_time: Optional[float] = None
        self._is_modified = False
        self._rule_hooks: List[RuleHook] = []
        self.reset_tracking()

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        name: str = "default",
        settings: Optional[BufferSettings] = None,
        endings: LineEnding = LineEnding.UNIX,
        scratch: bool = False,
    ) -> "Buffer":
        return cls(
            name=name,
            document=BufferDocument.from_text(text),
            settings=settings,
            endings=endings,
            scratch=scratch,
        )

    @classmethod
    def from_file(
        cls, path: str, *, settings: Optional[BufferSettings] = None
    ) -> "Buffer":
        """Load ``path`` decoding it with the buffer's ``encoding`` option."""

        settings = settings or BufferSettings()
        abs_path = os.path.abspath(os.path.expanduser(path))
        with open(abs_path, "rb") as handle:
            raw = handle.read()
        text = codecs.decode(raw, settings.get_str("encoding"), INTERNAL_ERRORS)
        endings = LineEnding.DOS if "\r\n" in text else LineEnding.UNIX
        buffer = cls(
            name=os.path.basename(abs_path),
            document=BufferDocument.from_text(text),
            settings=settings,
            path=path,
            endings=endings,
        )
        buffer.mod_time = get_mod_time(abs_path)
        return buffer

    # -- modification tracking -------------------------------------------

    @property
    def modified(self) -> bool:
        if self.scratch:
            return False
        if self.settings.get_bool("fastdirty"):
            return self._is_modified
        return self.content_hash() != self.orig_hash

    def set_modified(self, value: bool) -> None:
        self._is_modified = value

    def reset_tracking(self) -> None:
        """Treat the current content as the on-disk baseline."""

        self._is_modified = False
        if self.settings.get_bool("fastdirty"):
            return
        if exceeds_threshold(self.byte_length()):
            self.settings.force_fast_dirty()
        else:
            self.orig_hash = self.content_hash()

    def content_hash(self) -> bytes:
        return content_hash(self.document.iter_line_bytes())

    def byte_length(self) -> int:
        return self.document.byte_length(self.endings.eol)

    def raw_bytes(self) -> bytes:
        """Raw internal bytes with the configured line endings."""

        return self.endings.eol.join(self.document.iter_line_bytes())

    # -- rules ----------------------------------------------------------

    def add_rule_hook(self, hook: RuleHook) -> None:
        self._rule_hooks.append(hook)

    def update_rules(self) -> None:
        for hook in self._rule_hooks:
            hook(self)

    # -- editing ----------------------------------------------------------

    def replace_range(
        self, start: Cursor, end: Cursor, text: str, *, label: str
    ) -> BufferDelta:
        start = ensure_cursor(self.document, start)
        end = ensure_cursor(self.document, end)
        if start > end:
            start, end = end, start
        with Transaction(self, label) as tx:
            before_text = _flatten_lines(self.document.snapshot())
            start_offset = _offset_for_cursor(self.document, start)
            end_offset = _offset_for_cursor(self.document, end)
            new_text = before_text[:start_offset] + text + before_text[end_offset:]
            tx.commit(new_text.split("\n"))
            self.state.set_cursor(
                *_cursor_from_offset(self.document, start_offset + len(text))
            )
        return BufferDelta(
            version=self.document.version, cursor=self.state.cursor, label=label
        )

    def insert_text(self, text: str, *, cursor: Optional[Cursor] = None) -> BufferDelta:
        position = cursor or self.state.cursor
        return self.replace_range(position, position, text, label="insert_text")

    def delete_range(self, start: Cursor, end: Cursor) -> BufferDelta:
        return self.replace_range(start, end, "", label="delete_range")

    def trim_trailing_whitespace(self) -> int:
        """Strip trailing whitespace from every line; return lines changed."""

        lines = self.document.snapshot()
        trimmed = [line.rstrip(WHITESPACE) for line in lines]
        changed = sum(1 for old, new in zip(lines, trimmed) if old != new)
        if changed:
            with Transaction(self, "trim_trailing_whitespace") as tx:
                tx.commit(trimmed)
        self.relocate_cursors()
        return changed

    def ensure_final_newline(self) -> bool:
        if self.document.ends_with_newline():
            return False
        with Transaction(self, "ensure_final_newline") as tx:
            tx.commit([*self.document.snapshot(), ""])
        return True

    def relocate_cursors(self) -> None:
        """Clamp every cursor and the selection back inside the document."""

        self.state.cursors = [
            clamp_cursor(self.document, cursor) for cursor in self.state.cursors
        ]
        if self.state.selection is not None:
            start, end = self.state.selection
            self.state.set_selection(
                clamp_cursor(self.document, start), clamp_cursor(self.document, end)
            )

    # -- persistence ------------------------------------------------------

    def save(self, *, settings: Optional[GlobalSettings] = None) -> "SaveOutcome":
        from textsave.save import orchestrator

        return orchestrator.save(self, settings=settings)

    def save_as(
        self, filename: str, *, settings: Optional[GlobalSettings] = None
    ) -> "SaveOutcome":
        from textsave.save import orchestrator

        return orchestrator.save_as(self, filename, settings=settings)

    def save_with_sudo(self, *, settings: Optional[GlobalSettings] = None) -> None:
        from textsave.save import privileged

        privileged.save_with_sudo(self, settings=settings)

    def save_as_with_sudo(
        self, filename: str, *, settings: Optional[GlobalSettings] = None
    ) -> None:
        from textsave.save import privileged

        privileged.save_as_with_sudo(self, filename, settings=settings)


class Transaction(AbstractContextManager["Transaction"]):
    def __init__(self, buffer: Buffer, label: str) -> None:
        self.buffer = buffer
        self.label = label
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            name=f"buffer::{self.label}",
            component=True,
            metadata={"buffer": self.buffer.name},
        )
        self._span_cm.__enter__()
        return self

    def commit(self, lines: List[str]) -> None:
        buffer = self.buffer
        buffer.document = buffer.document.replace(lines)
        buffer.set_modified(True)

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False


def _flatten_lines(lines) -> str:
    return "\n".join(lines)


def _offset_for_cursor(document: BufferDocument, cursor: Cursor) -> int:
    lines = document.snapshot()
    row, col = cursor
    offset = 0
    for i in range(row):
        offset += len(lines[i]) + 1  # newline
    offset += col
    return offset


def _cursor_from_offset(document: BufferDocument, offset: int) -> Cursor:
    lines = document.snapshot()
    running = 0
    for row, line in enumerate(lines):
        line_len = len(line)
        if offset <= running + line_len:
            return (row, offset - running)
        running += line_len + 1
    return (len(lines) - 1, len(lines[-1]))
