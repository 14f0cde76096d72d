# modsmith/artifacts/store.py
from __future__ import annotations
import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Mapping

from pydantic import ValidationError

from modsmith.core.errors import ArtifactNotFoundError
from modsmith.core.fsutils import atomicWriteText, ensureDir, unlinkQuietly
from modsmith.core.paths import isUnder, safeFileComponent
from modsmith.core.time import parseIso
from .types import Artifact, ArtifactType, ProjectBuildHistory

if TYPE_CHECKING:
    from modsmith.app.settings import PipelineSettings

logger = logging.getLogger(__name__)

__all__ = [
    "SIDECAR_NAME",
    "DEFAULT_RETENTION_LIMIT",
    "ProjectLocks",
    "ArtifactStore",
]


SIDECAR_NAME = "build-meta.json"
DEFAULT_RETENTION_LIMIT = 10



class ProjectLocks:
    """
    Hands out one re-entrant lock per directory so read-modify-write cycles on
    the same project never interleave. Keys are resolved paths.
    """
    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lockFor(self, directory: Path) -> threading.RLock:
        key = str(Path(directory).resolve(strict=False))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock



class ArtifactStore:
    """
    Per-project JSON sidecar (`build-meta.json`) tracking artifact history,
    with one builds root per artifact kind:

        {pluginsRoot}/{Project}/build-meta.json
        {pluginsRoot}/{Project}/{Project}-1.0.0-build1.jar
        {packsRoot}/{Project}/...

    Reads are tolerant: a missing or corrupt sidecar loads as an empty history.
    """

    def __init__(
        self,
        buildsRoots: Mapping[ArtifactType, Path],
        *,
        retentionLimit: int = DEFAULT_RETENTION_LIMIT,
        locks: ProjectLocks | None = None,
    ) -> None:
        if retentionLimit < 1:
            raise ValueError("retentionLimit must be at least 1")
        self.buildsRoots: dict[ArtifactType, Path] = {kind: Path(root) for kind, root in buildsRoots.items()}
        self.retentionLimit = retentionLimit
        self.locks = locks or ProjectLocks()

    @classmethod
    def fromSettings(cls, settings: PipelineSettings, *, locks: ProjectLocks | None = None) -> "ArtifactStore":
        return cls(
            {
                ArtifactType.COMPILED_PACKAGE: settings.paths.pluginBuildsRoot,
                ArtifactType.ARCHIVE_PACKAGE: settings.paths.packBuildsRoot,
            },
            retentionLimit=settings.build.retentionLimit,
            locks=locks,
        )

    # ----- Layout -----

    def rootFor(self, artifactType: ArtifactType) -> Path:
        try:
            return self.buildsRoots[artifactType]
        except KeyError:
            raise KeyError(f"No builds root configured for '{artifactType.value}' artifacts") from None

    def projectDirFor(self, artifactType: ArtifactType, projectName: str) -> Path:
        return self.rootFor(artifactType) / safeFileComponent(projectName)

    def lockFor(self, projectDir: Path) -> threading.RLock:
        return self.locks.lockFor(projectDir)

    def iterProjectDirs(self) -> Iterator[tuple[ArtifactType, Path]]:
        for artifactType, root in self.buildsRoots.items():
            if not root.is_dir():
                continue
            for child in sorted(root.iterdir()):
                if child.is_dir():
                    yield artifactType, child

    # ----- Sidecar I/O -----

    def load(self, projectDir: Path) -> ProjectBuildHistory:
        projectDir = Path(projectDir)
        sidecar = projectDir / SIDECAR_NAME
        empty = ProjectBuildHistory(projectName=projectDir.name)
        if not sidecar.is_file():
            return empty

        try:
            raw = json.loads(sidecar.read_text(encoding="utf-8"))
            history = ProjectBuildHistory.model_validate(raw)
        except (OSError, UnicodeDecodeError, ValueError, ValidationError) as err:
            # History is disposable; a bad sidecar must not block builds
            logger.warning("Discarding unreadable build history '%s': %s", sidecar, err)
            return empty

        kept = [artifact for artifact in history.artifacts if isUnder(artifact.outputPath, projectDir)]
        if len(kept) != len(history.artifacts):
            logger.warning(
                "Ignoring %d artifact(s) in '%s' that point outside the project directory",
                len(history.artifacts) - len(kept),
                sidecar,
            )
            history.artifacts = kept
        if not history.projectName:
            history.projectName = projectDir.name
        return history

    def save(self, projectDir: Path, history: ProjectBuildHistory) -> None:
        projectDir = ensureDir(Path(projectDir))
        atomicWriteText(projectDir / SIDECAR_NAME, history.model_dump_json(indent=2))

    # ----- Mutations -----

    def append(self, projectDir: Path, artifact: Artifact, retentionLimit: int | None = None) -> list[Artifact]:
        """
        Appends `artifact` and prunes the oldest entries beyond the retention limit.
        Backing files of evicted entries are deleted best-effort. Returns the evicted artifacts.
        """
        projectDir = Path(projectDir)
        limit = self.retentionLimit if retentionLimit is None else retentionLimit
        if limit < 1:
            raise ValueError("retentionLimit must be at least 1")
        if not isUnder(artifact.outputPath, projectDir):
            raise ValueError(f"Artifact '{artifact.outputPath}' is not inside '{projectDir}'")

        with self.lockFor(projectDir):
            ensureDir(projectDir)
            history = self.load(projectDir)
            history.artifacts.append(artifact)

            evicted: list[Artifact] = []
            if len(history.artifacts) > limit:
                overflow = len(history.artifacts) - limit
                evicted = history.artifacts[:overflow]
                history.artifacts = history.artifacts[overflow:]
                for old in evicted:
                    # Never delete a file another kept entry still points to
                    if any(kept.outputPath == old.outputPath for kept in history.artifacts):
                        continue
                    unlinkQuietly(old.outputPath)
                logger.debug("Pruned %d artifact(s) of '%s'", len(evicted), history.projectName)

            self.save(projectDir, history)
        return evicted

    def remove(self, projectDir: Path, artifactId: str) -> bool:
        """Drops the entry with `artifactId`. Returns False (and writes nothing) if absent."""
        projectDir = Path(projectDir)
        with self.lockFor(projectDir):
            history = self.load(projectDir)
            remaining = [artifact for artifact in history.artifacts if artifact.id != artifactId]
            if len(remaining) == len(history.artifacts):
                return False
            history.artifacts = remaining
            self.save(projectDir, history)
        return True

    # ----- Queries -----

    def listAll(self) -> list[Artifact]:
        """
        Every artifact whose backing file still exists, newest first.
        Stale entries are filtered, not repaired; listing never writes.
        """
        artifacts: list[Artifact] = []
        for _artifactType, projectDir in self.iterProjectDirs():
            history = self.load(projectDir)
            artifacts.extend(artifact for artifact in history.artifacts if artifact.outputPath.is_file())
        artifacts.sort(key=lambda artifact: parseIso(artifact.builtAt), reverse=True)
        return artifacts

    def findById(self, artifactId: str) -> tuple[Artifact, Path] | None:
        for _artifactType, projectDir in self.iterProjectDirs():
            for artifact in self.load(projectDir).artifacts:
                if artifact.id == artifactId:
                    return artifact, projectDir
        return None

    # ----- Housekeeping -----

    def deleteArtifact(self, artifactId: str) -> Artifact:
        found = self.findById(artifactId)
        if found is None:
            raise ArtifactNotFoundError("Artifact not found.")
        artifact, projectDir = found
        with self.lockFor(projectDir):
            artifact.outputPath.unlink(missing_ok=True)
            self.remove(projectDir, artifact.id)
        logger.info("Deleted artifact '%s' (%s)", artifact.fileName, artifact.id)
        return artifact

    def clearAll(self) -> int:
        """Deletes every artifact file and sidecar under all roots. Returns the artifact file count."""
        deletedCount = 0
        for artifactType, projectDir in list(self.iterProjectDirs()):
            with self.lockFor(projectDir):
                for entry in list(projectDir.iterdir()):
                    if not entry.is_file():
                        continue
                    isArtifact = entry.suffix.lower() == artifactType.extension
                    if isArtifact or entry.name == SIDECAR_NAME:
                        entry.unlink()
                        if isArtifact:
                            deletedCount += 1
                if not any(projectDir.iterdir()):
                    projectDir.rmdir()
        logger.info("Cleared %d artifact file(s)", deletedCount)
        return deletedCount
