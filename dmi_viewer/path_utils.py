"""Path helpers shared by the explorer catalog, export and settings.

Keep this module free of Qt dependencies.
"""

from __future__ import annotations

import os
from pathlib import Path

PathLike = str | os.PathLike[str]


def abs_path(path: PathLike) -> Path:
    """Absolute, user-expanded path; the target does not have to exist."""
    p = Path(path).expanduser()
    try:
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def folder_of(path: PathLike) -> str:
    """Absolute folder for ``path``: an existing file maps to its parent."""
    p = abs_path(path)
    try:
        if p.exists() and not p.is_dir():
            p = p.parent
    except OSError:
        pass
    return str(p)


def path_key(path: PathLike) -> str:
    """Catalog key: absolute path with forward slashes and an upper-case drive letter."""
    key = str(abs_path(path)).replace("\\", "/")
    if key[1:2] == ":":
        key = key[0].upper() + key[1:]
    return key
