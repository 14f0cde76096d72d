# modsmith/artifacts/__init__.py
from .types import (
    Artifact,
    ArtifactType,
    DecodedArtifactName,
    InstalledModRecord,
    ProjectBuildHistory,
)
from .naming import decodeArtifactName, encodeArtifactName
from .store import ArtifactStore, ProjectLocks

__all__ = [
    "Artifact",
    "ArtifactType",
    "DecodedArtifactName",
    "InstalledModRecord",
    "ProjectBuildHistory",
    "decodeArtifactName",
    "encodeArtifactName",
    "ArtifactStore",
    "ProjectLocks",
]
