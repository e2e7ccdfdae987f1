"""Errors raised by the save path."""

from __future__ import annotations

from typing import Optional, Sequence


class SaveError(RuntimeError):
    """Base class for failures the save path detects itself."""


class ScratchBufferError(SaveError):
    def __init__(self) -> None:
        super().__init__("Cannot save scratch buffer")


class MissingParentError(SaveError):
    """Raised when the destination's directory is missing and ``mkparents`` is off."""

    def __init__(self, directory: str) -> None:
        super().__init__(
            f"Parent dirs don't exist ({directory}), enable 'mkparents' for auto creation"
        )
        self.directory = directory


class EncodingLookupError(SaveError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown encoding '{name}'")
        self.name = name


class EncoderError(SaveError):
    """Raised when content cannot be represented in the target encoding."""

    def __init__(self, encoding: str, reason: str) -> None:
        super().__init__(f"Cannot encode buffer as {encoding}: {reason}")
        self.encoding = encoding


class PrivilegedSaveError(SaveError):
    """Raised when the elevation helper fails to start or exits non-zero."""

    def __init__(
        self, command: Sequence[str], *, returncode: Optional[int] = None
    ) -> None:
        if returncode is None:
            message = f"Could not start '{command[0]}'"
        else:
            message = f"'{' '.join(command)}' exited with status {returncode}"
        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode


class BookkeepingError(SaveError):
    """Raised when buffer-side state cannot be persisted after a save."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Could not store buffer state for {path}: {reason}")
        self.path = path


__all__ = [
    "BookkeepingError",
    "EncoderError",
    "EncodingLookupError",
    "MissingParentError",
    "PrivilegedSaveError",
    "SaveError",
    "ScratchBufferError",
]
