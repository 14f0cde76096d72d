# modsmith/archives/collaborators.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

import json5

from modsmith.core.errors import WorldNotFoundError
from modsmith.core.paths import resolveUnder

logger = logging.getLogger(__name__)

__all__ = [
    "MOD_LOCATIONS",
    "ModEntry",
    "Profile",
    "ModInventory",
    "ProfileStore",
    "WorldSource",
    "PathChooser",
    "StaticModInventory",
    "SavesWorldSource",
    "DeploymentRoots",
]


MOD_LOCATIONS = ("mods", "packs", "earlyplugins")

# Receives a suggested file name, returns the chosen path or None when the user cancels
PathChooser = Callable[[str], Path | None]



@dataclass(frozen=True, slots=True)
class ModEntry:
    """One mod as reported by the live mod inventory."""
    id: str
    name: str
    version: str | None
    type: str                   # e.g. "plugin", "pack"
    format: str                 # "directory", "jar" or "zip"
    location: str               # one of MOD_LOCATIONS
    path: Path



@dataclass(slots=True)
class Profile:
    id: str
    name: str
    enabledMods: list[str] = field(default_factory=list)



class ModInventory(Protocol):
    def listMods(self) -> Sequence[ModEntry]: ...



class ProfileStore(Protocol):
    def getProfile(self, profileId: str) -> Profile | None: ...
    def createProfile(self, name: str) -> Profile: ...
    def updateProfile(self, profile: Profile) -> None: ...



class WorldSource(Protocol):
    def enabledModIds(self, worldId: str) -> set[str]:
        """Raises WorldNotFoundError when the world does not exist."""
        ...



@dataclass
class StaticModInventory:
    """Inventory snapshot handed in by the caller."""
    entries: list[ModEntry] = field(default_factory=list)

    def listMods(self) -> Sequence[ModEntry]:
        return list(self.entries)



class SavesWorldSource:
    """
    Reads enabled mods from `{savesRoot}/{worldId}/config.json`:

        {"Mods": {"Example:Mod": {"Enabled": true}, ...}}

    A missing or unparsable config means the world does not exist.
    """
    CONFIG_NAME = "config.json"

    def __init__(self, savesRoot: Path) -> None:
        self.savesRoot = Path(savesRoot)

    def readConfig(self, worldId: str) -> Mapping[str, Any] | None:
        configPath = resolveUnder(self.savesRoot, Path(worldId) / self.CONFIG_NAME, error=WorldNotFoundError)
        if not configPath.is_file():
            return None
        try:
            parsed = json5.loads(configPath.read_text(encoding="utf-8"))
        except Exception as err:
            logger.warning("Unreadable world config '%s': %s", configPath, err)
            return None
        return parsed if isinstance(parsed, Mapping) else None

    def enabledModIds(self, worldId: str) -> set[str]:
        config = self.readConfig(worldId)
        if config is None:
            raise WorldNotFoundError("World not found.")
        mods = config.get("Mods")
        if not isinstance(mods, Mapping):
            return set()
        return {
            str(modId)
            for modId, modConfig in mods.items()
            if isinstance(modConfig, Mapping) and modConfig.get("Enabled") is True
        }



@dataclass(frozen=True, slots=True)
class DeploymentRoots:
    """Where imported payloads land, per mod location."""
    modsPath: Path | None
    earlyPluginsPath: Path | None = None

    def targetFor(self, location: str) -> Path | None:
        if location in ("mods", "packs"):
            return self.modsPath
        if location == "earlyplugins":
            return self.earlyPluginsPath
        return None
