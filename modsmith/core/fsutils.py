# modsmith/core/fsutils.py
from __future__ import annotations
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

__all__ = [
    "ensureDir",
    "atomicWriteText",
    "atomicWriteBytes",
    "atomicTarget",
    "copyFileAtomic",
    "unlinkQuietly",
]



def ensureDir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path



@contextmanager
def atomicTarget(path: Path) -> Iterator[Path]:
    """
    Yields a temporary sibling of `path`. When the block exits cleanly the
    temporary file is renamed over `path` (os.replace, same filesystem), so
    readers never observe a half-written file. On any failure the temporary
    file is removed and `path` is left untouched.
    """
    ensureDir(path.parent)
    fd, tmpName = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    tmpPath = Path(tmpName)
    try:
        yield tmpPath
        os.replace(tmpPath, path)
    except BaseException:
        try:
            tmpPath.unlink(missing_ok=True)
        except OSError:
            pass
        raise



def atomicWriteBytes(path: Path, data: bytes) -> None:
    with atomicTarget(path) as tmpPath:
        with tmpPath.open("wb") as file:
            file.write(data)
            file.flush()
            os.fsync(file.fileno())



def atomicWriteText(path: Path, text: str) -> None:
    atomicWriteBytes(path, text.encode("utf-8"))



def copyFileAtomic(source: Path, destination: Path) -> Path:
    with atomicTarget(destination) as tmpPath:
        shutil.copyfile(source, tmpPath)
    return destination



def unlinkQuietly(path: Path) -> bool:
    """Best-effort delete. Returns True when the file is gone afterwards."""
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as err:
        logger.warning("Could not delete '%s': %s", path, err)
        return False
