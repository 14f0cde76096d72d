# modsmith/build/metadata.py
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import json5

from modsmith.core.paths import safeFileComponent

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_VERSION",
    "PLUGIN_MANIFEST_CANDIDATES",
    "PACK_MANIFEST_CANDIDATES",
    "PROPERTIES_FILE",
    "ProjectMetadata",
    "readProjectMetadata",
]


DEFAULT_VERSION = "1.0.0"
PLUGIN_MANIFEST_CANDIDATES = ("src/main/resources/manifest.json",)
PACK_MANIFEST_CANDIDATES = ("manifest.json", "Server/manifest.json")
PROPERTIES_FILE = "gradle.properties"

_VERSION_LINE_RE = re.compile(r"^version\s*=\s*(.+)$", re.MULTILINE)



@dataclass(frozen=True, slots=True)
class ProjectMetadata:
    projectName: str
    version: str
    manifestPath: Path | None = None



def _readManifest(path: Path) -> Mapping[str, Any] | None:
    try:
        parsed = json5.loads(path.read_text(encoding="utf-8"))
    except Exception as err:
        logger.debug("Ignoring unreadable manifest '%s': %s", path, err)
        return None
    if not isinstance(parsed, Mapping):
        logger.debug("Ignoring manifest '%s': not an object", path)
        return None
    return parsed



def _readPropertiesVersion(path: Path) -> str | None:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        logger.debug("Ignoring unreadable properties '%s': %s", path, err)
        return None
    match = _VERSION_LINE_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None



def readProjectMetadata(
    projectPath: Path,
    manifestCandidates: Sequence[str],
    *,
    propertiesFile: str | None = PROPERTIES_FILE,
) -> ProjectMetadata:
    """
    Determines project name and version. The first existing manifest
    candidate supplies `Name`/`Version`; a `version=` line in the properties
    file overrides the version. Anything missing or malformed falls back to
    the directory name and DEFAULT_VERSION.
    """
    projectName = projectPath.name
    version = DEFAULT_VERSION
    manifestPath: Path | None = None

    for candidate in manifestCandidates:
        path = projectPath / candidate
        if path.is_file():
            manifestPath = path
            break

    if manifestPath is not None:
        manifest = _readManifest(manifestPath)
        if manifest is not None:
            name = manifest.get("Name")
            if isinstance(name, str) and name.strip():
                projectName = name.strip()
            manifestVersion = manifest.get("Version")
            if isinstance(manifestVersion, str) and manifestVersion.strip():
                version = manifestVersion.strip()

    if propertiesFile:
        propsPath = projectPath / propertiesFile
        if propsPath.is_file():
            version = _readPropertiesVersion(propsPath) or version

    return ProjectMetadata(
        projectName=safeFileComponent(projectName, fallback=safeFileComponent(projectPath.name)),
        version=safeFileComponent(version, fallback=DEFAULT_VERSION),
        manifestPath=manifestPath,
    )
