# modsmith/deploy/manager.py
from __future__ import annotations
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from modsmith.artifacts.naming import RECOGNIZED_EXTENSIONS, decodeArtifactName
from modsmith.artifacts.store import ArtifactStore
from modsmith.artifacts.types import InstalledModRecord
from modsmith.core.errors import ArtifactNotFoundError, ConfigurationError
from modsmith.core.fsutils import atomicTarget, ensureDir
from modsmith.core.logging import logContext
from modsmith.core.time import mtimeIso

logger = logging.getLogger(__name__)

__all__ = ["DeployResult", "DeploymentManager"]



@dataclass(frozen=True, slots=True)
class DeployResult:
    destinationPath: Path
    replacedPath: Path | None = None



class DeploymentManager:
    """
    Copies artifacts into the live deployment directory. At most one build of a
    project may be live there; deploying replaces the previous one.
    Build directories keep every retained build; only the deployment directory
    enforces the one-per-project rule.
    """

    def __init__(self, store: ArtifactStore, defaultTargetDir: Path | None = None) -> None:
        self.store = store
        self.defaultTargetDir = defaultTargetDir

    def _targetDir(self, targetDir: Path | str | None) -> Path:
        resolved = targetDir if targetDir is not None else self.defaultTargetDir
        if resolved is None:
            raise ConfigurationError("Mods folder is not configured. Please set the deployment path in settings.")
        return Path(resolved)

    def deploy(self, artifactId: str, targetDir: Path | str | None = None) -> DeployResult:
        found = self.store.findById(artifactId)
        if found is None:
            raise ArtifactNotFoundError("Artifact not found.")
        artifact, _projectDir = found

        destFolder = self._targetDir(targetDir)
        if not artifact.outputPath.is_file():
            raise ArtifactNotFoundError(f"Artifact file '{artifact.outputPath}' no longer exists.")

        with logContext(operation="deploy", projectName=artifact.projectName, artifactId=artifact.id):
            ensureDir(destFolder)
            destPath = destFolder / artifact.outputPath.name

            # Stage the copy first so a failed copy leaves the live build in place
            with atomicTarget(destPath) as stagedPath:
                shutil.copyfile(artifact.outputPath, stagedPath)
                replacedPath = self._removePreviousBuild(destFolder, artifact.projectName, {stagedPath, destPath})

            logger.info(
                "Deployed %s to '%s'%s",
                destPath.name,
                destFolder,
                f" (replaced {replacedPath.name})" if replacedPath is not None else "",
            )
        return DeployResult(destinationPath=destPath, replacedPath=replacedPath)

    def _removePreviousBuild(self, destFolder: Path, projectName: str, skip: set[Path]) -> Path | None:
        for entry in sorted(destFolder.iterdir()):
            if entry in skip or not entry.is_file():
                continue
            decoded = decodeArtifactName(entry.name)
            if decoded is not None and decoded.projectName == projectName:
                entry.unlink()
                return entry # Only one build per project may be live
        return None

    def listInstalled(self, targetDir: Path | str | None = None) -> list[InstalledModRecord]:
        """
        Decodes every recognised artifact file in the deployment directory.
        Files that do not follow the naming convention are skipped. With no
        deployment directory configured nothing is installed, so the list is empty.
        """
        if targetDir is None and self.defaultTargetDir is None:
            return []
        folder = self._targetDir(targetDir)
        if not folder.is_dir():
            return []

        mods: list[InstalledModRecord] = []
        for entry in sorted(folder.iterdir()):
            if not entry.is_file() or entry.suffix.lower() not in RECOGNIZED_EXTENSIONS:
                continue
            decoded = decodeArtifactName(entry.name)
            if decoded is None:
                continue
            stats = entry.stat()
            mods.append(InstalledModRecord(
                fileName=entry.name,
                filePath=entry,
                projectName=decoded.projectName,
                version=decoded.version,
                buildNumber=decoded.buildNumber,
                artifactType=decoded.artifactType,
                installedAt=mtimeIso(stats.st_mtime),
                fileSizeBytes=stats.st_size,
            ))
        return mods
