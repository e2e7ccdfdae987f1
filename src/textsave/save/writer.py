"""Streaming writer converting internal UTF-8 bytes to the on-disk encoding."""

from __future__ import annotations

import codecs
import os
from typing import BinaryIO, Callable, TypeVar

from textsave.buffer.document import INTERNAL_ENCODING, INTERNAL_ERRORS
from textsave.runtime import telemetry

from .errors import EncoderError, EncodingLookupError

T = TypeVar("T")

FILE_MODE = 0o644
OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC

_UTF8 = codecs.lookup("utf-8").name


def lookup_encoding(name: str) -> codecs.CodecInfo:
    try:
        codec = codecs.lookup(name)
    except LookupError as exc:
        raise EncodingLookupError(name) from exc
    if not getattr(codec, "_is_text_encoding", True):
        raise EncodingLookupError(name)
    return codec


class EncodedWriter:
    """Byte sink that re-encodes internal content as it is written.

    Input is decoded incrementally as UTF-8, so a multi-byte sequence split
    across two ``write`` calls is still encoded correctly. UTF-8 targets are
    written through unchanged.
    """

    def __init__(self, raw: BinaryIO, codec: codecs.CodecInfo) -> None:
        self.raw = raw
        self.codec = codec
        self._passthrough = codec.name == _UTF8
        self._decoder = codecs.getincrementaldecoder(INTERNAL_ENCODING)(
            INTERNAL_ERRORS
        )
        self._encoder = codec.incrementalencoder("strict")

    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of input bytes consumed."""

        if self._passthrough:
            self.raw.write(data)
        else:
            self.raw.write(self._transform(data, final=False))
        return len(data)

    def flush(self) -> None:
        if not self._passthrough:
            self.raw.write(self._transform(b"", final=True))
        self.raw.flush()

    def _transform(self, data: bytes, *, final: bool) -> bytes:
        text = self._decoder.decode(data, final=final)
        try:
            return self._encoder.encode(text, final=final)
        except UnicodeError as exc:
            raise EncoderError(self.codec.name, str(exc)) from exc


def overwrite_file(
    name: str, codec: codecs.CodecInfo, fn: Callable[[EncodedWriter], T]
) -> T:
    """Truncate ``name`` and hand an ``EncodedWriter`` over it to ``fn``.

    ``fn`` runs exactly once and the file is closed on every path. The first
    failure wins: an error from ``fn`` or the encoder is raised even when the
    close fails too, and a close error only surfaces on its own.
    """

    handle = os.fdopen(os.open(name, OPEN_FLAGS, FILE_MODE), "wb")
    try:
        writer = EncodedWriter(handle, codec)
        result = fn(writer)
        writer.flush()
    except BaseException:
        try:
            handle.close()
        except OSError as close_exc:
            telemetry.log(
                "warning",
                "save::close_failed",
                data={"path": name, "error": str(close_exc)},
            )
        raise
    handle.close()
    return result
