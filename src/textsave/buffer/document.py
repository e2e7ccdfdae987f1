"""Line storage backing a buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence

INTERNAL_ENCODING = "utf-8"
INTERNAL_ERRORS = "surrogateescape"


@dataclass(slots=True)
class BufferDocument:
    """Immutable-ish list-of-lines text storage.

    Lines never carry their terminator. The byte view of a line is its UTF-8
    encoding; undecodable input bytes survive a load/save cycle through
    ``surrogateescape``.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0

    @classmethod
    def from_text(cls, text: str) -> "BufferDocument":
        return cls(_lines=text.replace("\r\n", "\n").split("\n"))

    @classmethod
    def from_bytes(cls, data: bytes) -> "BufferDocument":
        return cls.from_text(data.decode(INTERNAL_ENCODING, INTERNAL_ERRORS))

    def snapshot(self) -> Sequence[str]:
        """Return the current lines without exposing internal mutability."""

        return tuple(self._lines)

    def replace(self, lines: Iterable[str]) -> "BufferDocument":
        """Return a new document holding ``lines`` with a bumped version."""

        return BufferDocument(_lines=list(lines), version=self.version + 1)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]

    def line_bytes(self, index: int) -> bytes:
        return self._lines[index].encode(INTERNAL_ENCODING, INTERNAL_ERRORS)

    def iter_line_bytes(self) -> Iterator[bytes]:
        for line in self._lines:
            yield line.encode(INTERNAL_ENCODING, INTERNAL_ERRORS)

    def byte_length(self, eol: bytes = b"\n") -> int:
        if not self._lines:
            return 0
        body = sum(len(data) for data in self.iter_line_bytes())
        return body + len(eol) * (len(self._lines) - 1)

    def ends_with_newline(self) -> bool:
        """True when the last character is a line break, or there is none."""

        return not self._lines or self._lines[-1] == ""
