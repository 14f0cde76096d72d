# modsmith/build/orchestrator.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from modsmith.artifacts.naming import decodeArtifactName, encodeArtifactName
from modsmith.artifacts.store import ArtifactStore, ProjectLocks
from modsmith.artifacts.types import Artifact, ArtifactType, ProjectBuildHistory
from modsmith.core.errors import ConfigurationError
from modsmith.core.fsutils import atomicTarget, copyFileAtomic, ensureDir
from modsmith.core.ids import newArtifactId
from modsmith.core.logging import logContext
from modsmith.core.time import nowMonotonicMs, utcNowIso
from modsmith.core.zipping import addDirectoryToZip, openDeflateZip
from .command import CommandResult, runCommand
from .metadata import PACK_MANIFEST_CANDIDATES, PLUGIN_MANIFEST_CANDIDATES, readProjectMetadata
from .toolchain import resolveBuildEnvironment

if TYPE_CHECKING:
    from modsmith.app.settings import PipelineSettings

logger = logging.getLogger(__name__)

__all__ = ["BuildResult", "BuildOrchestrator", "nextBuildNumber"]


CommandRunner = Callable[..., CommandResult]



@dataclass(frozen=True, slots=True)
class BuildResult:
    """
    Outcome of one build. A failed external build is a normal result
    (`success=False`) carrying the captured log, not an exception.
    """
    success: bool
    output: str
    durationMs: int
    truncated: bool = False
    exitCode: int | None = None
    artifact: Artifact | None = None



def nextBuildNumber(
    history: ProjectBuildHistory,
    projectDir: Path,
    projectName: str,
    version: str,
    artifactType: ArtifactType,
) -> int:
    """
    Per-version counter: one past the number of recorded builds of `version`,
    or past the highest build number still recorded or present on disk for it,
    whichever is larger. Pruned history therefore never hands out a number a
    live file already uses.
    """
    sameVersion = [artifact for artifact in history.artifacts if artifact.version == version]
    highest = len(sameVersion)

    for artifact in sameVersion:
        number = artifact.buildNumber
        if number is None:
            decoded = decodeArtifactName(artifact.fileName)
            number = decoded.buildNumber if decoded is not None else None
        if number is not None:
            highest = max(highest, number)

    if projectDir.is_dir():
        for entry in projectDir.iterdir():
            decoded = decodeArtifactName(entry.name)
            if (
                decoded is not None
                and decoded.buildNumber is not None
                and decoded.projectName == projectName
                and decoded.version == version
                and decoded.artifactType is artifactType
            ):
                highest = max(highest, decoded.buildNumber)

    return highest + 1



class BuildOrchestrator:
    """
    Produces one artifact per call and registers it in the ArtifactStore.

    Compiled-package builds run the external build tool; archive-package
    builds zip the project directory. Builds of the same project directory
    are serialized.
    """

    def __init__(
        self,
        store: ArtifactStore,
        settings: PipelineSettings,
        *,
        locks: ProjectLocks | None = None,
        commandRunner: CommandRunner = runCommand,
    ) -> None:
        self.store = store
        self.settings = settings
        self._locks = locks or ProjectLocks()
        self._runCommand = commandRunner

    # ----- Compiled package -----

    def buildPlugin(self, projectPath: Path | str) -> BuildResult:
        projectPath = Path(projectPath)
        if not projectPath.is_dir():
            raise ConfigurationError("Plugin project not found.")

        with self._locks.lockFor(projectPath):
            meta = readProjectMetadata(projectPath, PLUGIN_MANIFEST_CANDIDATES)
            with logContext(operation="build.plugin", projectName=meta.projectName):
                return self._buildPluginLocked(projectPath, meta.projectName, meta.version)

    def _buildPluginLocked(self, projectPath: Path, projectName: str, version: str) -> BuildResult:
        buildSettings = self.settings.build
        env = resolveBuildEnvironment(self.settings.toolchain)
        command = buildSettings.resolvedCommand()

        logger.info("Building %s %s", projectName, version)
        result = self._runCommand(
            command,
            list(buildSettings.args),
            projectPath,
            env,
            maxOutputChars=buildSettings.maxOutputChars,
            timeoutSeconds=buildSettings.timeoutSeconds,
        )

        if result.timedOut:
            return self._failed(result, f"Build timed out after {buildSettings.timeoutSeconds}s.")

        if result.exitCode != 0:
            logger.info("Build of %s failed with exit code %s", projectName, result.exitCode)
            return BuildResult(
                success=False,
                output=result.output,
                durationMs=result.durationMs,
                truncated=result.truncated,
                exitCode=result.exitCode,
            )

        # A zero exit code does not prove the expected output exists
        outputDir = projectPath / buildSettings.outputDir
        if not outputDir.is_dir():
            return self._failed(result, "Build output directory not found.")

        candidates = sorted(
            entry.name
            for entry in outputDir.iterdir()
            if entry.is_file()
            and entry.suffix.lower() == ArtifactType.COMPILED_PACKAGE.extension
            and "sources" not in entry.name
        )
        if not candidates:
            return self._failed(result, "No JAR file found in build output.")

        sourceFile = outputDir / candidates[-1]
        artifact = self._register(
            ArtifactType.COMPILED_PACKAGE,
            projectName,
            version,
            durationMs=result.durationMs,
            buildLog=result.output,
            logTruncated=result.truncated,
            produce=lambda destination: copyFileAtomic(sourceFile, destination),
        )
        logger.info("Built %s in %dms", artifact.fileName, result.durationMs)
        return BuildResult(
            success=True,
            output=result.output,
            durationMs=result.durationMs,
            truncated=result.truncated,
            exitCode=result.exitCode,
            artifact=artifact,
        )

    def _failed(self, result: CommandResult, diagnostic: str) -> BuildResult:
        logger.info("Build failed: %s", diagnostic)
        return BuildResult(
            success=False,
            output=f"{result.output}\n\n{diagnostic}",
            durationMs=result.durationMs,
            truncated=result.truncated,
            exitCode=result.exitCode,
        )

    # ----- Archive package -----

    def buildPack(self, projectPath: Path | str) -> BuildResult:
        """
        Zips the whole project directory into a versioned archive.
        I/O errors propagate; there is no soft-failure path here.
        """
        projectPath = Path(projectPath)
        if not projectPath.is_dir():
            raise ConfigurationError("Pack project not found.")

        with self._locks.lockFor(projectPath):
            meta = readProjectMetadata(projectPath, PACK_MANIFEST_CANDIDATES)
            with logContext(operation="build.pack", projectName=meta.projectName):
                startedAt = nowMonotonicMs()
                fileCount = 0

                def produce(destination: Path) -> None:
                    nonlocal fileCount
                    with atomicTarget(destination) as tmpPath:
                        with openDeflateZip(tmpPath) as archive:
                            fileCount = addDirectoryToZip(archive, projectPath)

                artifact = self._register(
                    ArtifactType.ARCHIVE_PACKAGE,
                    meta.projectName,
                    meta.version,
                    durationMs=None,
                    buildLog="",
                    logTruncated=False,
                    produce=produce,
                    startedAt=startedAt,
                    describe=lambda: f"Pack built successfully ({fileCount} files)",
                )
                logger.info("Built %s in %dms", artifact.fileName, artifact.durationMs)
                return BuildResult(
                    success=True,
                    output=f"Pack built successfully in {artifact.durationMs}ms",
                    durationMs=artifact.durationMs,
                    artifact=artifact,
                )

    # ----- Shared registration -----

    def _register(
        self,
        artifactType: ArtifactType,
        projectName: str,
        version: str,
        *,
        durationMs: int | None,
        buildLog: str,
        logTruncated: bool,
        produce: Callable[[Path], object],
        startedAt: int | None = None,
        describe: Callable[[], str] | None = None,
    ) -> Artifact:
        buildsDir = self.store.projectDirFor(artifactType, projectName)
        with self.store.lockFor(buildsDir):
            ensureDir(buildsDir)
            history = self.store.load(buildsDir)
            buildNumber = nextBuildNumber(history, buildsDir, projectName, version, artifactType)
            outputPath = buildsDir / encodeArtifactName(projectName, version, buildNumber, artifactType)

            produce(outputPath)

            if durationMs is None:
                # Archive builds are timed through the write
                durationMs = nowMonotonicMs() - (startedAt or 0)
            artifact = Artifact(
                id=newArtifactId(),
                projectName=projectName,
                version=version,
                outputPath=outputPath.resolve(),
                builtAt=utcNowIso(),
                durationMs=max(0, durationMs),
                fileSizeBytes=outputPath.stat().st_size,
                artifactType=artifactType,
                buildNumber=buildNumber,
                buildLog=describe() if describe is not None else buildLog,
                logTruncated=logTruncated,
            )
            self.store.append(buildsDir, artifact)
        return artifact
