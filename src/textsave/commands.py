"""Ex-style command lines that persist the active buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional

from textsave.buffer import Buffer
from textsave.runtime import telemetry
from textsave.save import SaveError, save_as, save_as_with_sudo
from textsave.settings import GlobalSettings


@dataclass(slots=True)
class CommandContext:
    buffer: Buffer
    settings: GlobalSettings = field(default_factory=GlobalSettings)


@dataclass(slots=True)
class CommandResult:
    status: str
    message: Optional[str] = None


CommandHandler = Callable[[CommandContext, List[str]], CommandResult]


def submit_command_line(context: CommandContext, raw: str) -> CommandResult:
    text = raw.strip()
    if not text:
        return CommandResult(status="command_empty")
    command, *args = text.split()
    handler = _COMMAND_HANDLERS.get(command)
    if handler is None:
        return CommandResult(status="command_error", message=command)
    return handler(context, args)


def _handle_write(
    context: CommandContext, args: List[str], *, sudo: bool = False
) -> CommandResult:
    buffer = context.buffer
    filename = args[0] if args else buffer.path
    if not filename:
        return CommandResult(status="command_write_error", message="No file name")
    try:
        if sudo:
            save_as_with_sudo(buffer, filename, settings=context.settings)
        else:
            save_as(buffer, filename, settings=context.settings)
    except (SaveError, OSError) as exc:
        telemetry.log(
            "warning",
            "command::write_failed",
            data={"path": filename, "error": str(exc)},
        )
        return CommandResult(status="command_write_error", message=str(exc))
    status = "command_write_sudo" if sudo else "command_write"
    return CommandResult(status=status, message=f"Saved {filename}")


def _handle_saveas(context: CommandContext, args: List[str]) -> CommandResult:
    if len(args) != 1:
        return CommandResult(status="command_error", message="saveas takes one file")
    return _handle_write(context, args)


_COMMAND_HANDLERS: Dict[str, CommandHandler] = {
    "write": _handle_write,
    "w": _handle_write,
    "write!": partial(_handle_write, sudo=True),
    "w!": partial(_handle_write, sudo=True),
    "saveas": _handle_saveas,
}


__all__ = ["CommandContext", "CommandResult", "submit_command_line"]
