# modsmith/archives/__init__.py
from .collaborators import (
    DeploymentRoots,
    ModEntry,
    ModInventory,
    Profile,
    ProfileStore,
    SavesWorldSource,
    StaticModInventory,
    WorldSource,
)
from .importer import ArchiveImporter, ImportModpackResult, ImportWorldModsResult
from .manifests import ModpackManifest, WorldModsManifest
from .packager import ArchivePackager, ExportResult

__all__ = [
    "DeploymentRoots",
    "ModEntry",
    "ModInventory",
    "Profile",
    "ProfileStore",
    "SavesWorldSource",
    "StaticModInventory",
    "WorldSource",
    "ArchiveImporter",
    "ImportModpackResult",
    "ImportWorldModsResult",
    "ModpackManifest",
    "WorldModsManifest",
    "ArchivePackager",
    "ExportResult",
]
