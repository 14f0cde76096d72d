# modsmith/core/zipping.py
from __future__ import annotations
import os
import zipfile
from pathlib import Path

__all__ = ["addDirectoryToZip", "openDeflateZip"]



def openDeflateZip(path: Path) -> zipfile.ZipFile:
    return zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED)



def addDirectoryToZip(archive: zipfile.ZipFile, sourceDir: Path, prefix: str = "") -> int:
    """
    Adds every file under `sourceDir` to `archive`, keeping the directory
    structure relative to `sourceDir` and placing it under `prefix`.
    Entry names always use forward slashes. Returns the number of files added.
    """
    prefix = prefix.strip("/")
    added = 0
    for dirPath, dirNames, fileNames in os.walk(sourceDir):
        dirNames.sort()
        for fileName in sorted(fileNames):
            fullPath = Path(dirPath) / fileName
            relative = fullPath.relative_to(sourceDir).as_posix()
            arcName = f"{prefix}/{relative}" if prefix else relative
            archive.write(fullPath, arcName)
            added += 1
    return added
