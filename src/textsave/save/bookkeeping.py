"""Buffer-side state kept across editor sessions.

When a buffer has ``savecursor`` enabled, every save records the cursor and
the file's modification time under ``GlobalSettings.state_dir``. Reopening
the file restores the cursor only if the file was not touched in between.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote

from textsave.buffer.state import Cursor
from textsave.buffer.tracking import get_mod_time
from textsave.buffer.validation import clamp_cursor
from textsave.settings import GlobalSettings

from .errors import BookkeepingError

if TYPE_CHECKING:
    from textsave.buffer import Buffer


@dataclass(slots=True)
class SerializedBuffer:
    cursor: Cursor
    mod_time: Optional[float]


def escape_path(path: str) -> str:
    """Percent-encode ``path`` into a single, reversible file name."""

    return quote(path, safe="")


def state_file(buffer: "Buffer", settings: GlobalSettings) -> str:
    return os.path.join(settings.state_dir, escape_path(buffer.abs_path))


def serialize(buffer: "Buffer", settings: GlobalSettings) -> Optional[str]:
    """Write the buffer's state file; returns its path, or ``None`` if disabled."""

    if not buffer.settings.get_bool("savecursor") or not buffer.abs_path:
        return None
    target = state_file(buffer, settings)
    record = SerializedBuffer(cursor=buffer.state.cursor, mod_time=buffer.mod_time)
    try:
        os.makedirs(settings.state_dir, exist_ok=True)
        with open(target, "w", encoding="utf-8") as handle:
            json.dump(asdict(record), handle)
    except OSError as exc:
        raise BookkeepingError(buffer.abs_path, str(exc)) from exc
    return target


def unserialize(buffer: "Buffer", settings: GlobalSettings) -> bool:
    """Restore the saved cursor if the file is unchanged since it was recorded."""

    if not buffer.settings.get_bool("savecursor") or not buffer.abs_path:
        return False
    try:
        with open(state_file(buffer, settings), encoding="utf-8") as handle:
            raw = json.load(handle)
        row, col = raw["cursor"]
        record = SerializedBuffer(
            cursor=(int(row), int(col)), mod_time=raw["mod_time"]
        )
    except FileNotFoundError:
        return False
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise BookkeepingError(buffer.abs_path, str(exc)) from exc

    if record.mod_time != get_mod_time(buffer.abs_path):
        return False
    buffer.state.set_cursor(*clamp_cursor(buffer.document, record.cursor))
    return True


__all__ = ["SerializedBuffer", "escape_path", "serialize", "state_file", "unserialize"]
