"""Save path: encoded writes, privileged writes, and post-save bookkeeping."""

from .bookkeeping import SerializedBuffer, serialize, unserialize
from .errors import (
    BookkeepingError,
    EncoderError,
    EncodingLookupError,
    MissingParentError,
    PrivilegedSaveError,
    SaveError,
    ScratchBufferError,
)
from .orchestrator import SaveOutcome, save, save_as
from .privileged import ChildSlot, forward_interrupts, save_as_with_sudo, save_with_sudo
from .writer import EncodedWriter, lookup_encoding, overwrite_file

__all__ = [
    "BookkeepingError",
    "ChildSlot",
    "EncodedWriter",
    "EncoderError",
    "EncodingLookupError",
    "MissingParentError",
    "PrivilegedSaveError",
    "SaveError",
    "SaveOutcome",
    "ScratchBufferError",
    "SerializedBuffer",
    "forward_interrupts",
    "lookup_encoding",
    "overwrite_file",
    "save",
    "save_as",
    "save_as_with_sudo",
    "save_with_sudo",
    "serialize",
    "unserialize",
]
