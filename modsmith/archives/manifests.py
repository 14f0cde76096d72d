# modsmith/archives/manifests.py
from __future__ import annotations
import json
import zipfile
from typing import TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from modsmith.core.errors import InvalidArchiveError

__all__ = [
    "MODPACK_MANIFEST_ENTRY",
    "WORLD_MODS_MANIFEST_ENTRY",
    "ModpackManifest",
    "WorldModManifestEntry",
    "WorldModsManifest",
    "readManifest",
    "writeManifest",
]


MODPACK_MANIFEST_ENTRY = "modpack.json"
WORLD_MODS_MANIFEST_ENTRY = "worldmods.json"

ManifestT = TypeVar("ManifestT", bound=BaseModel)



class ModpackManifest(BaseModel):
    """Pointer-only profile export; mod ids are re-resolved on import."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    profileId: str | None = None
    enabledModIds: list[str] = Field(default_factory=list, validation_alias=AliasChoices("enabledModIds", "enabledMods"))
    exportedAt: str = ""
    modCount: int = 0

    @field_validator("enabledModIds")
    @classmethod
    def _orderedUnique(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))



class WorldModManifestEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    version: str | None = None
    type: str = ""
    format: str = ""
    location: str
    entryName: str | None = None   # payload folder/file name under mods/{location}/



class WorldModsManifest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    worldId: str
    exportedAt: str = ""
    mods: list[WorldModManifestEntry] = Field(default_factory=list)



def readManifest(archive: zipfile.ZipFile, entryName: str, model: type[ManifestT]) -> ManifestT:
    """Raises InvalidArchiveError if the entry is missing or does not hold a valid manifest."""
    try:
        raw = archive.read(entryName)
    except KeyError:
        raise InvalidArchiveError(f"Invalid archive: missing {entryName}") from None
    try:
        return model.model_validate(json.loads(raw.decode("utf-8")))
    except (UnicodeDecodeError, ValueError, ValidationError) as err:
        raise InvalidArchiveError(f"Invalid archive: malformed {entryName}: {err}") from err



def writeManifest(archive: zipfile.ZipFile, entryName: str, manifest: BaseModel) -> None:
    archive.writestr(entryName, manifest.model_dump_json(indent=2))
