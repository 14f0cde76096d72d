# modsmith/app/context.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from modsmith.archives.collaborators import (
    DeploymentRoots,
    ModInventory,
    PathChooser,
    ProfileStore,
    SavesWorldSource,
    WorldSource,
)
from modsmith.archives.importer import ArchiveImporter
from modsmith.archives.packager import ArchivePackager
from modsmith.artifacts.store import ArtifactStore, ProjectLocks
from modsmith.build.orchestrator import BuildOrchestrator
from modsmith.core.logging import configureLogging
from modsmith.deploy.manager import DeploymentManager
from .settings import PipelineSettings, loadSettings

logger = logging.getLogger(__name__)

__all__ = ["PipelineContext"]



@dataclass
class PipelineContext:
    """
    Everything one pipeline instance needs, passed explicitly instead of living
    in module globals. Build orchestrators created from the same context share
    per-project locks, so concurrent builds of one project are serialized.
    """
    settings: PipelineSettings
    locks: ProjectLocks = field(default_factory=ProjectLocks)
    store: ArtifactStore = field(init=False)

    def __post_init__(self) -> None:
        self.store = ArtifactStore.fromSettings(self.settings, locks=self.locks)

    @classmethod
    def bootstrap(
        cls,
        settingsPath: Path | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
        readUserFile: bool = True,
        setupLogging: bool = True,
    ) -> "PipelineContext":
        settings = loadSettings(settingsPath, overrides=overrides, readUserFile=readUserFile)
        if setupLogging:
            configureLogging(settings.logging)
        logger.info("Pipeline ready (builds root '%s')", settings.paths.buildsRoot)
        return cls(settings=settings)

    # ----- Components -----

    def orchestrator(self) -> BuildOrchestrator:
        return BuildOrchestrator(self.store, self.settings, locks=self.locks)

    def deployer(self) -> DeploymentManager:
        return DeploymentManager(self.store, self.settings.paths.modsPath)

    def deploymentRoots(self) -> DeploymentRoots:
        return DeploymentRoots(
            modsPath=self.settings.paths.modsPath,
            earlyPluginsPath=self.settings.paths.earlyPluginsPath,
        )

    def worldSource(self) -> WorldSource | None:
        savesPath = self.settings.paths.savesPath
        return SavesWorldSource(savesPath) if savesPath is not None else None

    def packager(
        self,
        inventory: ModInventory,
        profiles: ProfileStore | None = None,
        *,
        worlds: WorldSource | None = None,
        chooseDestination: PathChooser | None = None,
    ) -> ArchivePackager:
        return ArchivePackager(
            inventory,
            profiles,
            worlds if worlds is not None else self.worldSource(),
            modpackExtension=self.settings.archives.modpackExtension,
            worldModsExtension=self.settings.archives.worldModsExtension,
            chooseDestination=chooseDestination,
        )

    def importer(
        self,
        inventory: ModInventory,
        profiles: ProfileStore | None = None,
        *,
        chooseSource: PathChooser | None = None,
    ) -> ArchiveImporter:
        return ArchiveImporter(inventory, profiles, roots=self.deploymentRoots(), chooseSource=chooseSource)
