"""Workspace identity derivation.

A workspace identity is the key a listener publishes its port under. It is
the first workspace root with the leading separator dropped and every other
separator replaced by ``-``:

    /Users/alice/proj -> Users-alice-proj

Two paths that differ only where one has ``-`` and the other has a separator
map to the same identity. That collision is accepted.
"""
from __future__ import annotations

import os
from pathlib import Path, PurePath
from typing import Iterable

DEFAULT_IDENTITY = "_default"
SEPARATOR_SUBSTITUTE = "-"

_SEPARATORS = tuple({os.sep, "/"} | ({os.altsep} if os.altsep else set()))


def sanitize_workspace_path(fs_path: str | PurePath) -> str:
    """Turn an absolute path into a filesystem-safe identity.

    Idempotent: sanitizing an already sanitized identity returns it unchanged.
    """
    text = str(fs_path)
    if text[:1] in _SEPARATORS:
        text = text[1:]
    for sep in _SEPARATORS:
        text = text.replace(sep, SEPARATOR_SUBSTITUTE)
    return text


def workspace_identity(folders: Iterable[str | PurePath] | None) -> str:
    """Identity for the first workspace folder, or the sentinel identity."""
    for folder in folders or ():
        # the filesystem root sanitizes to nothing
        return sanitize_workspace_path(folder) or DEFAULT_IDENTITY
    return DEFAULT_IDENTITY


def cwd_identity(cwd: str | PurePath | None = None) -> str:
    """Identity a bridge uses for its working directory."""
    return sanitize_workspace_path(cwd if cwd is not None else Path.cwd()) or DEFAULT_IDENTITY
