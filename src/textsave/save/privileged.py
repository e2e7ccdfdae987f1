"""Saving through an elevation helper (``sudo tee <file>``)."""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Optional

from textsave.buffer.tracking import get_mod_time
from textsave.runtime import telemetry
from textsave.settings import GlobalSettings

from . import bookkeeping
from .errors import PrivilegedSaveError, ScratchBufferError

if TYPE_CHECKING:
    from textsave.buffer import Buffer


def build_command(settings: GlobalSettings, filename: str) -> List[str]:
    return [settings.sucmd, "tee", filename]


@dataclass
class ChildSlot:
    """Holds the helper process once it has been spawned."""

    process: Optional[subprocess.Popen] = None

    def kill(self) -> None:
        if self.process is not None and self.process.poll() is None:
            self.process.kill()


@contextmanager
def forward_interrupts() -> Iterator[ChildSlot]:
    """Route SIGINT to the child stored in the yielded slot while the block runs.

    The handler is in place before the child exists; an interrupt that lands
    with an empty slot is ignored. The previous handler is restored on exit.
    Signal handlers can only be installed from the main thread; elsewhere the
    block runs unchanged.
    """

    slot = ChildSlot()
    if threading.current_thread() is not threading.main_thread():
        telemetry.log("debug", "save::interrupts_not_forwarded")
        yield slot
        return

    def _kill_child(signum, frame) -> None:
        del signum, frame
        slot.kill()

    previous = signal.signal(signal.SIGINT, _kill_child)
    try:
        yield slot
    finally:
        signal.signal(signal.SIGINT, previous)


def save_with_sudo(
    buffer: "Buffer", *, settings: Optional[GlobalSettings] = None
) -> None:
    save_as_with_sudo(buffer, buffer.path, settings=settings)


def save_as_with_sudo(
    buffer: "Buffer", filename: str, *, settings: Optional[GlobalSettings] = None
) -> None:
    """Pipe the buffer's raw bytes into ``<sucmd> tee filename``.

    ``path``/``abs_path`` are updated before the helper runs and are not
    rolled back if it fails; modification state only changes on success.
    """

    if buffer.scratch:
        raise ScratchBufferError()
    settings = settings or GlobalSettings()

    buffer.update_rules()
    buffer.path = filename
    buffer.abs_path = os.path.abspath(filename)

    command = build_command(settings, filename)
    with telemetry.span(
        "save::save_as_with_sudo",
        component="save",
        metadata={"buffer": buffer.name, "path": filename, "sucmd": settings.sucmd},
    ):
        with forward_interrupts() as slot:
            try:
                process = subprocess.Popen(
                    command, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL
                )
            except OSError as exc:
                raise PrivilegedSaveError(command) from exc
            slot.process = process
            process.communicate(buffer.raw_bytes())

        if process.returncode != 0:
            telemetry.record_event(
                "buffer.save_sudo",
                level="error",
                data={"path": filename, "returncode": process.returncode},
            )
            raise PrivilegedSaveError(command, returncode=process.returncode)

        buffer.reset_tracking()
        buffer.mod_time = get_mod_time(buffer.abs_path)
        bookkeeping.serialize(buffer, settings)
        telemetry.record_event("buffer.save_sudo", data={"path": filename})


__all__ = [
    "ChildSlot",
    "build_command",
    "forward_interrupts",
    "save_as_with_sudo",
    "save_with_sudo",
]
