"""Destination path handling."""

from __future__ import annotations

import os

from .errors import MissingParentError


def replace_home(path: str) -> str:
    """Expand a leading ``~`` or ``~user`` to the home directory."""

    return os.path.expanduser(path)


def resolve_destination(path: str) -> str:
    return os.path.abspath(replace_home(path))


def ensure_parent_dir(path: str, *, mkparents: bool) -> None:
    """Make sure the directory holding ``path`` exists.

    Missing ancestors are created when ``mkparents`` is set, otherwise
    ``MissingParentError`` is raised before anything touches the disk.
    """

    dirname = os.path.dirname(path)
    if not dirname or os.path.exists(dirname):
        return
    if not mkparents:
        raise MissingParentError(dirname)
    os.makedirs(dirname, exist_ok=True)
