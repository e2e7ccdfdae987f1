"""The normal save path: normalise, serialise, encode, then update tracking."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from textsave.buffer.tracking import exceeds_threshold, get_mod_time
from textsave.runtime import telemetry
from textsave.settings import GlobalSettings

from . import bookkeeping
from .errors import ScratchBufferError
from .paths import ensure_parent_dir, resolve_destination
from .writer import EncodedWriter, lookup_encoding, overwrite_file

if TYPE_CHECKING:
    from textsave.buffer import Buffer


@dataclass(slots=True)
class SaveOutcome:
    """What a single save produced.

    ``size`` counts internal bytes serialized, before encoding.
    ``fast_dirty_engaged`` is set when this save switched the buffer to
    fast-dirty tracking.
    """

    path: str
    size: int = 0
    fast_dirty_engaged: bool = False
    error: Optional[BaseException] = None

    def as_event(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "path": self.path,
            "size": self.size,
            "fast_dirty_engaged": self.fast_dirty_engaged,
        }
        if self.error is not None:
            data["error"] = f"{type(self.error).__name__}: {self.error}"
        return data


def save(buffer: "Buffer", *, settings: Optional[GlobalSettings] = None) -> SaveOutcome:
    return save_as(buffer, buffer.path, settings=settings)


def save_as(
    buffer: "Buffer", filename: str, *, settings: Optional[GlobalSettings] = None
) -> SaveOutcome:
    """Write ``buffer`` to ``filename``, creating the file if needed."""

    if buffer.scratch:
        raise ScratchBufferError()
    settings = settings or GlobalSettings()

    with telemetry.span(
        "save::save_as",
        component="save",
        metadata={"buffer": buffer.name, "path": filename},
    ) as handle:
        buffer.update_rules()
        if buffer.settings.get_bool("rmtrailingws"):
            buffer.trim_trailing_whitespace()
        if buffer.settings.get_bool("eofnewline"):
            buffer.ensure_final_newline()

        abs_filename = resolve_destination(filename)
        outcome = SaveOutcome(path=abs_filename)
        with finalize_save(buffer, abs_filename, settings, outcome):
            ensure_parent_dir(
                abs_filename, mkparents=buffer.settings.get_bool("mkparents")
            )
            codec = lookup_encoding(buffer.settings.get_str("encoding"))
            outcome.size = overwrite_file(
                abs_filename, codec, partial(write_lines, buffer)
            )
            _track_content(buffer, outcome)
            buffer.path = filename
            buffer.abs_path = abs_filename
            buffer.set_modified(False)
        handle.add_metadata("size", outcome.size)
    return outcome


def write_lines(buffer: "Buffer", sink: EncodedWriter) -> int:
    """Write every line joined by the buffer's terminator; return bytes written."""

    lines = buffer.document.iter_line_bytes()
    first = next(lines, None)
    if first is None:
        return 0
    eol = buffer.endings.eol
    size = sink.write(first)
    for data in lines:
        size += sink.write(eol)
        size += sink.write(data)
    return size


def _track_content(buffer: "Buffer", outcome: SaveOutcome) -> None:
    # fastdirty is sticky: once forced on it stays on for this buffer.
    if buffer.settings.get_bool("fastdirty"):
        return
    if exceeds_threshold(outcome.size):
        buffer.settings.force_fast_dirty()
        outcome.fast_dirty_engaged = True
    else:
        buffer.orig_hash = buffer.content_hash()


def finalize_bookkeeping(
    buffer: "Buffer", abs_filename: str, settings: GlobalSettings
) -> None:
    buffer.mod_time = get_mod_time(abs_filename)
    bookkeeping.serialize(buffer, settings)


@contextmanager
def finalize_save(
    buffer: "Buffer",
    abs_filename: str,
    settings: GlobalSettings,
    outcome: SaveOutcome,
) -> Iterator[None]:
    """Run bookkeeping on every exit path of the wrapped block.

    An error raised by the block stays the primary one; a bookkeeping error
    is only raised when the block itself succeeded.
    """

    primary: Optional[BaseException] = None
    try:
        yield
    except BaseException as exc:
        primary = exc
        raise
    finally:
        try:
            finalize_bookkeeping(buffer, abs_filename, settings)
        except Exception as exc:
            if primary is None:
                primary = exc
                raise
            telemetry.log(
                "warning",
                "save::bookkeeping_failed",
                data={"path": abs_filename, "error": str(exc)},
            )
        finally:
            outcome.error = primary
            telemetry.record_event(
                "buffer.save",
                level="error" if primary is not None else "info",
                data=outcome.as_event(),
            )


__all__ = ["SaveOutcome", "finalize_bookkeeping", "save", "save_as", "write_lines"]
