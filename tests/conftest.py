# tests/conftest.py
from __future__ import annotations
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import json5
import pytest

from modsmith.app.context import PipelineContext
from modsmith.app.settings import PipelineSettings, deepMerge, loadSettings
from modsmith.archives.collaborators import Profile



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



# ----- Settings / context -----

@pytest.fixture()
def makeSettings(tmp_path: Path) -> Callable[..., PipelineSettings]:
    """Builds settings rooted in tmp_path; keyword overrides are deep-merged."""
    def factory(**overrides: Any) -> PipelineSettings:
        base = {
            "paths": {
                "buildsRoot": str(tmp_path / "builds"),
                "modsPath": str(tmp_path / "game" / "Mods"),
                "earlyPluginsPath": str(tmp_path / "game" / "EarlyPlugins"),
                "savesPath": str(tmp_path / "game" / "Saves"),
            },
        }
        return loadSettings(overrides=deepMerge(base, overrides), readUserFile=False)
    return factory



@pytest.fixture()
def pipeline(makeSettings) -> PipelineContext:
    return PipelineContext(settings=makeSettings())



# ----- Project helpers -----

def writeJson(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json5.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path



@pytest.fixture()
def makePackProject(tmp_path: Path) -> Callable[..., Path]:
    def factory(name: str = "Alpha", version: str = "1.0.0", *, dirName: str | None = None) -> Path:
        root = tmp_path / "projects" / (dirName or name)
        writeJson(root / "manifest.json", {"Name": name, "Version": version})
        (root / "Server" / "Item" / "Items").mkdir(parents=True, exist_ok=True)
        (root / "Server" / "Item" / "Items" / "sword.json").write_text('{"Damage": 5}', encoding="utf-8")
        (root / "Common" / "Icons").mkdir(parents=True, exist_ok=True)
        (root / "Common" / "Icons" / "sword.png").write_bytes(b"\x89PNG fake")
        return root
    return factory



# ----- Collaborator fakes -----

@dataclass
class MemoryProfileStore:
    profiles: dict[str, Profile] = field(default_factory=dict)
    _nextId: int = 1

    def getProfile(self, profileId: str) -> Profile | None:
        return self.profiles.get(profileId)

    def createProfile(self, name: str) -> Profile:
        profile = Profile(id=f"profile-{self._nextId}", name=name)
        self._nextId += 1
        self.profiles[profile.id] = profile
        return profile

    def updateProfile(self, profile: Profile) -> None:
        self.profiles[profile.id] = profile



@pytest.fixture()
def profileStore() -> MemoryProfileStore:
    return MemoryProfileStore()
