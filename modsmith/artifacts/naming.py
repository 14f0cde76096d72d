# modsmith/artifacts/naming.py
from __future__ import annotations
import re

from .types import ArtifactType, DecodedArtifactName

__all__ = [
    "ARTIFACT_NAME_RE",
    "RECOGNIZED_EXTENSIONS",
    "encodeArtifactName",
    "decodeArtifactName",
]


# "{Project}-{Version}[-build{N}].{ext}". The project group is greedy, so a
# version-like substring inside a project name can mis-parse; that ambiguity is
# part of the naming convention and kept for compatibility with existing files.
ARTIFACT_NAME_RE = re.compile(
    r"^(?P<project>.+)-(?P<version>\d+\.\d+\.\d+)(?:-build(?P<build>\d+))?\.(?P<ext>jar|zip)$",
    re.IGNORECASE,
)

RECOGNIZED_EXTENSIONS = frozenset(member.extension for member in ArtifactType)



def encodeArtifactName(
    projectName: str,
    version: str,
    buildNumber: int | None,
    ext: ArtifactType | str,
) -> str:
    if isinstance(ext, ArtifactType):
        ext = ext.value
    ext = str(ext).lstrip(".")
    if buildNumber is None:
        return f"{projectName}-{version}.{ext}"
    return f"{projectName}-{version}-build{buildNumber}.{ext}"



def decodeArtifactName(fileName: str) -> DecodedArtifactName | None:
    """Returns the decoded name parts, or None if `fileName` does not follow the convention."""
    if not isinstance(fileName, str):
        return None
    match = ARTIFACT_NAME_RE.fullmatch(fileName)
    if match is None:
        return None
    artifactType = ArtifactType.fromExtension(match.group("ext"))
    if artifactType is None:
        return None
    build = match.group("build")
    return DecodedArtifactName(
        projectName=match.group("project"),
        version=match.group("version"),
        buildNumber=int(build) if build is not None else None,
        artifactType=artifactType,
    )
