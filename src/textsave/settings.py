"""Per-buffer and editor-wide options consumed by the save path."""

from __future__ import annotations

import os
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

ENV_PREFIX = "TEXTSAVE_"

DEFAULT_BUFFER_SETTINGS: Mapping[str, Any] = MappingProxyType(
    {
        "rmtrailingws": False,
        "eofnewline": True,
        "mkparents": False,
        "encoding": "utf-8",
        "fastdirty": False,
        "savecursor": False,
    }
)

DEFAULT_GLOBAL_SETTINGS: Mapping[str, Any] = MappingProxyType(
    {
        "sucmd": "sudo",
        "state_dir": os.path.join("~", ".config", "textsave", "buffers"),
    }
)


class BufferSettings(Mapping[str, Any]):
    """Options local to one buffer.

    Readers go through the mapping interface or the typed accessors. The save
    path only ever writes ``fastdirty``, via ``force_fast_dirty``.
    """

    def __init__(self, overrides: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(DEFAULT_BUFFER_SETTINGS)
        if overrides:
            unknown = set(overrides) - set(self._values)
            if unknown:
                raise KeyError(f"Unknown buffer settings: {sorted(unknown)}")
            self._values.update(overrides)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_bool(self, key: str) -> bool:
        return bool(self._values[key])

    def get_str(self, key: str) -> str:
        return str(self._values[key])

    def force_fast_dirty(self) -> None:
        self._values["fastdirty"] = True


class GlobalSettings(Mapping[str, Any]):
    """Read-only editor-wide options, injected into the save operations."""

    def __init__(self, overrides: Optional[Mapping[str, Any]] = None) -> None:
        values = dict(DEFAULT_GLOBAL_SETTINGS)
        values.update(overrides or {})
        self._values = MappingProxyType(values)

    @classmethod
    def from_env(cls) -> "GlobalSettings":
        overrides = {}
        for key in DEFAULT_GLOBAL_SETTINGS:
            raw = os.getenv(f"{ENV_PREFIX}{key.upper()}")
            if raw:
                overrides[key] = raw
        return cls(overrides)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def sucmd(self) -> str:
        return str(self._values["sucmd"])

    @property
    def state_dir(self) -> str:
        return os.path.expanduser(str(self._values["state_dir"]))


__all__ = [
    "BufferSettings",
    "DEFAULT_BUFFER_SETTINGS",
    "DEFAULT_GLOBAL_SETTINGS",
    "GlobalSettings",
]
