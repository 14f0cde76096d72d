# modsmith/archives/importer.py
from __future__ import annotations
import dataclasses
import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from modsmith.core.errors import (
    ConfigurationError,
    InvalidArchiveError,
    OperationCancelledError,
)
from modsmith.core.fsutils import ensureDir
from modsmith.core.logging import logContext
from modsmith.core.paths import resolveUnder
from .collaborators import DeploymentRoots, ModInventory, PathChooser, ProfileStore
from .manifests import (
    MODPACK_MANIFEST_ENTRY,
    WORLD_MODS_MANIFEST_ENTRY,
    ModpackManifest,
    WorldModManifestEntry,
    WorldModsManifest,
    readManifest,
)

logger = logging.getLogger(__name__)

__all__ = ["ImportModpackResult", "ImportWorldModsResult", "ArchiveImporter", "openArchive"]


DEFAULT_PROFILE_NAME = "Imported Profile"



@dataclass(frozen=True, slots=True)
class ImportModpackResult:
    profileId: str
    modCount: int
    droppedModIds: list[str] = field(default_factory=list)



@dataclass(frozen=True, slots=True)
class ImportWorldModsResult:
    modsImported: int
    modsSkipped: int



def openArchive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except zipfile.BadZipFile as err:
        raise InvalidArchiveError(f"Invalid archive: '{path.name}' is not a zip file") from err



class ArchiveImporter:
    """Validates and unpacks modpack and world-mods archives."""

    def __init__(
        self,
        inventory: ModInventory,
        profiles: ProfileStore | None = None,
        *,
        roots: DeploymentRoots | None = None,
        chooseSource: PathChooser | None = None,
    ) -> None:
        self.inventory = inventory
        self.profiles = profiles
        self.roots = roots
        self._chooseSource = chooseSource

    def _source(self, archivePath: Path | str | None, hint: str) -> Path:
        if archivePath is not None:
            return Path(archivePath)
        chosen = self._chooseSource(hint) if self._chooseSource is not None else None
        if chosen is None:
            raise OperationCancelledError("Import cancelled.")
        return Path(chosen)

    # ----- Modpack -----

    def importModpack(self, archivePath: Path | str | None = None) -> ImportModpackResult:
        """
        Creates a new profile from a modpack archive. Mod ids unknown to the
        current inventory are dropped; references going stale between
        machines are expected.
        """
        if self.profiles is None:
            raise ConfigurationError("Profile store is not configured.")
        source = self._source(archivePath, MODPACK_MANIFEST_ENTRY)

        with logContext(operation="import.modpack"):
            with openArchive(source) as archive:
                manifest = readManifest(archive, MODPACK_MANIFEST_ENTRY, ModpackManifest)

            profile = self.profiles.createProfile(manifest.name.strip() or DEFAULT_PROFILE_NAME)
            knownIds = {entry.id for entry in self.inventory.listMods()}
            validIds = [modId for modId in manifest.enabledModIds if modId in knownIds]
            dropped = [modId for modId in manifest.enabledModIds if modId not in knownIds]
            self.profiles.updateProfile(dataclasses.replace(profile, enabledMods=validIds))

            if dropped:
                logger.info("Dropped %d unknown mod id(s) from '%s'", len(dropped), source.name)
        return ImportModpackResult(profileId=profile.id, modCount=len(validIds), droppedModIds=dropped)

    # ----- World mods -----

    def importWorldMods(self, archivePath: Path | str | None = None) -> ImportWorldModsResult:
        """
        Extracts each listed mod into its deployment root. A mod whose target
        already exists is skipped and counted, never overwritten. Mods with an
        unrecognised or unconfigured location are ignored.
        """
        if self.roots is None or self.roots.modsPath is None:
            raise ConfigurationError("Mods folder is not configured. Please set the deployment path in settings.")
        source = self._source(archivePath, WORLD_MODS_MANIFEST_ENTRY)

        imported = 0
        skipped = 0
        with logContext(operation="import.worldMods"), openArchive(source) as archive:
            manifest = readManifest(archive, WORLD_MODS_MANIFEST_ENTRY, WorldModsManifest)
            names = archive.namelist()

            for mod in manifest.mods:
                targetRoot = self.roots.targetFor(mod.location)
                if targetRoot is None:
                    logger.debug("Skipping '%s': no target for location '%s'", mod.id, mod.location)
                    continue

                locationPrefix = f"mods/{mod.location}/"
                entryName = self._entryNameFor(mod, names, locationPrefix)
                if entryName is None:
                    logger.debug("Skipping '%s': no payload in archive", mod.id)
                    continue

                modPrefix = f"{locationPrefix}{entryName}"
                members = [name for name in names if name == modPrefix or name.startswith(modPrefix + "/")]
                files = [name for name in members if not name.endswith("/")]
                if not files:
                    continue

                targetPath = resolveUnder(targetRoot, entryName)
                if targetPath.exists():
                    skipped += 1
                    logger.info("Skipping '%s': '%s' already exists", mod.id, targetPath)
                    continue

                # Validate every destination before writing anything
                plan = [(member, resolveUnder(targetRoot, member[len(locationPrefix):])) for member in files]
                ensureDir(targetRoot)
                for member, destPath in plan:
                    ensureDir(destPath.parent)
                    with archive.open(member) as src, destPath.open("wb") as dst:
                        shutil.copyfileobj(src, dst)
                imported += 1

        logger.info("Imported %d mod(s), skipped %d from '%s'", imported, skipped, source.name)
        return ImportWorldModsResult(modsImported=imported, modsSkipped=skipped)

    @staticmethod
    def _entryNameFor(mod: WorldModManifestEntry, names: list[str], locationPrefix: str) -> str | None:
        if mod.entryName:
            return mod.entryName
        # Older archives do not record the payload name; take the first one under the location
        for name in names:
            if name.startswith(locationPrefix) and name != locationPrefix:
                return name[len(locationPrefix):].split("/")[0]
        return None
