# modsmith/app/settings.py
from __future__ import annotations
import os
import logging
from pathlib import Path
from typing import Any, Mapping, cast

import json5
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modsmith.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "SETTINGS_ENV_VAR",
    "SETTINGS_DEFAULTS",
    "PathsSettings",
    "ToolchainSettings",
    "BuildSettings",
    "ArchiveSettings",
    "LoggingSettings",
    "PipelineSettings",
    "defaultSettingsPath",
    "loadUserSettings",
    "loadSettings",
    "deepMerge",
]


SETTINGS_ENV_VAR = "MODSMITH_SETTINGS"
_HOME_DIR = Path("~/.modsmith").expanduser()

SETTINGS_DEFAULTS: dict[str, Any] = {
    "paths": {
        "buildsRoot": str(_HOME_DIR / "builds"),
        "modsPath": None,
        "earlyPluginsPath": None,
        "savesPath": None,
    },
    "toolchain": {"jdkPath": None, "managedJdkPath": None, "homeVariable": "JAVA_HOME"},
    "build": {
        "command": None,
        "args": ["jar"],
        "outputDir": "build/libs",
        "maxOutputChars": 50_000,
        "timeoutSeconds": None,
        "retentionLimit": 10,
    },
    "archives": {"modpackExtension": ".modpack", "worldModsExtension": ".worldmods"},
    "logging": {"devMode": False, "level": None, "file": None, "redact": True},
}



# ------------------------------------------------------------------ #
# Typed view over the merged document
# ------------------------------------------------------------------ #

class PathsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    buildsRoot: Path
    modsPath: Path | None = None
    earlyPluginsPath: Path | None = None
    savesPath: Path | None = None

    @field_validator("buildsRoot", "modsPath", "earlyPluginsPath", "savesPath")
    @classmethod
    def _expandUser(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @property
    def pluginBuildsRoot(self) -> Path:
        return self.buildsRoot / "plugins"

    @property
    def packBuildsRoot(self) -> Path:
        return self.buildsRoot / "packs"



class ToolchainSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    jdkPath: Path | None = None
    managedJdkPath: Path | None = None
    homeVariable: str = "JAVA_HOME"

    @field_validator("jdkPath", "managedJdkPath")
    @classmethod
    def _expandUser(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None



class BuildSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: str | None = None
    args: list[str] = Field(default_factory=lambda: ["jar"])
    outputDir: str = "build/libs"
    maxOutputChars: int = Field(default=50_000, ge=1)
    timeoutSeconds: float | None = Field(default=None, gt=0)
    retentionLimit: int = Field(default=10, ge=1)

    def resolvedCommand(self) -> str:
        if self.command:
            return self.command
        return "gradlew.bat" if os.name == "nt" else "./gradlew"



class ArchiveSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    modpackExtension: str = ".modpack"
    worldModsExtension: str = ".worldmods"



class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    devMode: bool = False
    level: str | None = None
    file: Path | None = None
    redact: bool = True



class PipelineSettings(BaseModel):
    """Validated settings for one pipeline context."""
    model_config = ConfigDict(extra="forbid")

    paths: PathsSettings
    toolchain: ToolchainSettings = Field(default_factory=ToolchainSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    archives: ArchiveSettings = Field(default_factory=ArchiveSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)



# ------------------------------------------------------------------ #
# Loading
# ------------------------------------------------------------------ #

def defaultSettingsPath() -> Path:
    override = os.environ.get(SETTINGS_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return _HOME_DIR / "settings.json5"



def loadUserSettings(path: Path | None = None) -> dict[str, Any]:
    """
    Reads the user settings file. Missing or unparsable files yield an empty
    mapping so a bad file never blocks the pipeline.
    """
    filePath = path if path is not None else defaultSettingsPath()
    if not filePath.exists():
        return {}
    try:
        parsed = json5.loads(filePath.read_text(encoding="utf-8"))
    except Exception as err:
        logger.error("Failed to parse '%s': %s", filePath, err)
        return {}
    if not isinstance(parsed, Mapping):
        logger.error("Settings file '%s' must contain an object, not '%s'", filePath, type(parsed).__name__)
        return {}
    return dict(parsed)



def deepMerge(first: Any, second: Any) -> Any:
    """
    Returns a new value where keys from `second` override/extend `first`.
    Only merges recursively when BOTH sides are dicts; otherwise `second` wins.
    """
    if isinstance(first, Mapping) and isinstance(second, Mapping):
        out: dict[str, Any] = dict(first)
        for key, value in second.items():
            out[key] = deepMerge(out[key], value) if key in out else value
        return out
    return second



def loadSettings(
    path: Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    readUserFile: bool = True,
) -> PipelineSettings:
    """
    Layers shipped defaults < user file < explicit overrides and validates the result.

    Raises:
        ConfigurationError: if the merged document does not validate
    """
    merged: Any = SETTINGS_DEFAULTS
    if readUserFile:
        merged = deepMerge(merged, loadUserSettings(path))
    if overrides:
        merged = deepMerge(merged, overrides)
    try:
        return PipelineSettings.model_validate(cast(dict[str, Any], merged))
    except ValidationError as err:
        raise ConfigurationError(f"Invalid settings: {err}") from err
