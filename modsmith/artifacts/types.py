# modsmith/artifacts/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

__all__ = [
    "ArtifactType",
    "Artifact",
    "ProjectBuildHistory",
    "DecodedArtifactName",
    "InstalledModRecord",
]



class ArtifactType(str, Enum):
    """Kind of deployable output. The value doubles as the file extension."""
    COMPILED_PACKAGE = "jar"
    ARCHIVE_PACKAGE = "zip"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def fromExtension(cls, ext: str) -> "ArtifactType | None":
        ext = str(ext or "").lower().lstrip(".")
        for member in cls:
            if member.value == ext:
                return member
        return None



class Artifact(BaseModel):
    """
    One produced output of a single build. Immutable once created.

    Legacy sidecars used `fileSize`, `output` and `outputTruncated`; those keys
    are still accepted when loading.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    projectName: str
    version: str
    outputPath: Path
    builtAt: str
    durationMs: int = Field(ge=0)
    fileSizeBytes: int = Field(ge=0, validation_alias=AliasChoices("fileSizeBytes", "fileSize"))
    artifactType: ArtifactType
    buildNumber: int | None = None
    buildLog: str = Field(default="", validation_alias=AliasChoices("buildLog", "output"))
    logTruncated: bool = Field(default=False, validation_alias=AliasChoices("logTruncated", "outputTruncated"))

    @property
    def fileName(self) -> str:
        return self.outputPath.name



class ProjectBuildHistory(BaseModel):
    """Ordered artifact history of one project; insertion order is build order."""
    model_config = ConfigDict(extra="ignore")

    projectName: str
    artifacts: list[Artifact] = Field(default_factory=list)



@dataclass(frozen=True, slots=True)
class DecodedArtifactName:
    projectName: str
    version: str
    buildNumber: int | None
    artifactType: ArtifactType



@dataclass(frozen=True, slots=True)
class InstalledModRecord:
    """Read-only projection of one deployed artifact file; never persisted."""
    fileName: str
    filePath: Path
    projectName: str
    version: str
    buildNumber: int | None
    artifactType: ArtifactType
    installedAt: str            # file modification time, ISO-8601 UTC
    fileSizeBytes: int
