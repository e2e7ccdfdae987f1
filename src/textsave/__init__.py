"""Persistence layer for editor text buffers."""

__all__ = [
    "buffer",
    "commands",
    "runtime",
    "save",
    "settings",
]

__version__ = "0.1.0"
