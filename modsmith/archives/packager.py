# modsmith/archives/packager.py
from __future__ import annotations
import logging
import re
import zipfile
from dataclasses import dataclass
from pathlib import Path

from modsmith.core.errors import (
    ConfigurationError,
    NothingToExportError,
    OperationCancelledError,
    ProfileNotFoundError,
)
from modsmith.core.fsutils import atomicTarget
from modsmith.core.logging import logContext
from modsmith.core.time import utcNowIso
from modsmith.core.zipping import addDirectoryToZip, openDeflateZip
from .collaborators import ModEntry, ModInventory, PathChooser, ProfileStore, WorldSource
from .manifests import (
    MODPACK_MANIFEST_ENTRY,
    WORLD_MODS_MANIFEST_ENTRY,
    ModpackManifest,
    WorldModManifestEntry,
    WorldModsManifest,
    writeManifest,
)

logger = logging.getLogger(__name__)

__all__ = ["ExportResult", "ArchivePackager", "suggestedFileName"]


_FILE_NAME_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_-]")



@dataclass(frozen=True, slots=True)
class ExportResult:
    outputPath: Path
    modCount: int



def suggestedFileName(stem: str, extension: str) -> str:
    return f"{_FILE_NAME_UNSAFE_RE.sub('_', stem) or 'export'}{extension}"



class ArchivePackager:
    """
    Writes shareable zip archives with an embedded JSON manifest:

      - modpack: profile name + enabled mod ids only, no payload
      - world mods: manifest plus every enabled mod's files under
        `mods/{location}/{entryName}`
    """

    def __init__(
        self,
        inventory: ModInventory,
        profiles: ProfileStore | None = None,
        worlds: WorldSource | None = None,
        *,
        modpackExtension: str = ".modpack",
        worldModsExtension: str = ".worldmods",
        chooseDestination: PathChooser | None = None,
    ) -> None:
        self.inventory = inventory
        self.profiles = profiles
        self.worlds = worlds
        self.modpackExtension = modpackExtension
        self.worldModsExtension = worldModsExtension
        self._chooseDestination = chooseDestination

    def _destination(self, outputPath: Path | str | None, suggestedName: str) -> Path:
        if outputPath is not None:
            return Path(outputPath)
        chosen = self._chooseDestination(suggestedName) if self._chooseDestination is not None else None
        if chosen is None:
            raise OperationCancelledError("Export cancelled.")
        return Path(chosen)

    # ----- Modpack -----

    def exportModpack(self, profileId: str, outputPath: Path | str | None = None) -> ExportResult:
        if self.profiles is None:
            raise ConfigurationError("Profile store is not configured.")
        profile = self.profiles.getProfile(profileId)
        if profile is None:
            raise ProfileNotFoundError("Profile not found.")

        with logContext(operation="export.modpack"):
            enabledIds = list(dict.fromkeys(profile.enabledMods))
            wanted = set(enabledIds)
            enabledMods = [entry for entry in self.inventory.listMods() if entry.id in wanted]

            manifest = ModpackManifest(
                name=profile.name,
                profileId=profile.id,
                enabledModIds=enabledIds,
                exportedAt=utcNowIso(),
                modCount=len(enabledMods),
            )

            destination = self._destination(outputPath, suggestedFileName(profile.name, self.modpackExtension))
            with atomicTarget(destination) as tmpPath:
                with openDeflateZip(tmpPath) as archive:
                    writeManifest(archive, MODPACK_MANIFEST_ENTRY, manifest)

            logger.info("Exported modpack '%s' with %d mod(s) to '%s'", profile.name, len(enabledMods), destination)
        return ExportResult(outputPath=destination, modCount=len(enabledMods))

    # ----- World mods -----

    def exportWorldMods(self, worldId: str, outputPath: Path | str | None = None) -> ExportResult:
        """
        Raises:
            WorldNotFoundError: unknown world
            NothingToExportError: no mod is enabled for the world; no file is written
        """
        if self.worlds is None:
            raise ConfigurationError("World saves location is not configured.")

        with logContext(operation="export.worldMods"):
            enabledIds = self.worlds.enabledModIds(worldId)
            enabledMods = [entry for entry in self.inventory.listMods() if entry.id in enabledIds]
            if not enabledMods:
                raise NothingToExportError("No mods are enabled for this world.")

            manifest = WorldModsManifest(
                worldId=worldId,
                exportedAt=utcNowIso(),
                mods=[
                    WorldModManifestEntry(
                        id=mod.id,
                        name=mod.name,
                        version=mod.version,
                        type=mod.type,
                        format=mod.format,
                        location=mod.location,
                        entryName=mod.path.name,
                    )
                    for mod in enabledMods
                ],
            )

            destination = self._destination(outputPath, suggestedFileName(f"{worldId}_mods", self.worldModsExtension))
            with atomicTarget(destination) as tmpPath:
                with openDeflateZip(tmpPath) as archive:
                    writeManifest(archive, WORLD_MODS_MANIFEST_ENTRY, manifest)
                    for mod in enabledMods:
                        self._addPayload(archive, mod)

            logger.info("Exported %d mod(s) of world '%s' to '%s'", len(enabledMods), worldId, destination)
        return ExportResult(outputPath=destination, modCount=len(enabledMods))

    def _addPayload(self, archive: zipfile.ZipFile, mod: ModEntry) -> None:
        prefix = f"mods/{mod.location}/{mod.path.name}"
        if mod.format == "directory" or mod.path.is_dir():
            addDirectoryToZip(archive, mod.path, prefix)
        else:
            archive.write(mod.path, prefix)
