# modsmith/core/paths.py
from __future__ import annotations
import re
from os import PathLike
from pathlib import Path

from modsmith.core.errors import InvalidArchiveError

__all__ = ["resolveUnder", "isUnder", "safeFileComponent"]



_UNSAFE_COMPONENT_RE = re.compile(r'[\x00-\x1f<>:"/\\|?*]')



def isUnder(path: Path, root: Path) -> bool:
    return path.resolve(strict=False).is_relative_to(root.resolve(strict=False))



def resolveUnder(
    root: Path,
    requested: str | PathLike[str] | None,
    *,
    error: type[Exception] = InvalidArchiveError,
) -> Path:
    """
    Returns a path under `root` for `requested`, rejecting traversal and absolute paths.
    Raises `error` if the path leaves root or runs through a symlink inside root.
    """
    requested = requested or "."
    if Path(requested).is_absolute():
        raise error(f"Path '{requested}' must be relative")

    rootResolved = root.resolve(strict=False)
    raw = root.joinpath(requested)
    resolved = raw.resolve(strict=False) # Target may not exist yet

    if not resolved.is_relative_to(rootResolved):
        raise error(f"Path '{requested}' points outside of '{root}'")

    # Parent chain inside root must not include symlinks
    path = raw
    while path.resolve(strict=False) != rootResolved:
        if path.is_symlink():
            raise error(f"Path '{requested}' runs through a symlink")
        parent = path.parent
        if parent == path: # Filesystem root guard
            break
        path = parent
    return resolved



def safeFileComponent(name: str, *, fallback: str = "project") -> str:
    """Replaces characters that cannot appear in a single file name component."""
    cleaned = _UNSAFE_COMPONENT_RE.sub("_", str(name or "")).strip()
    cleaned = cleaned.lstrip(".")
    return cleaned or fallback
