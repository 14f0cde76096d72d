# modsmith/build/toolchain.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from modsmith.app.settings import ToolchainSettings

logger = logging.getLogger(__name__)

__all__ = ["resolveToolchainHome", "resolveBuildEnvironment"]



def resolveToolchainHome(settings: ToolchainSettings) -> Path | None:
    """First configured toolchain directory that exists on disk; custom beats managed."""
    for candidate in (settings.jdkPath, settings.managedJdkPath):
        if candidate is not None and candidate.exists():
            return candidate
    return None



def resolveBuildEnvironment(
    settings: ToolchainSettings,
    baseEnv: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Environment for the build subprocess. With a usable toolchain its `bin`
    directory is prepended to PATH and it is exported as the home variable;
    otherwise the ambient environment is inherited unchanged.
    """
    env = dict(os.environ if baseEnv is None else baseEnv)
    home = resolveToolchainHome(settings)
    if home is None:
        return env

    env[settings.homeVariable] = str(home)
    currentPath = env.get("PATH", "")
    binDir = str(home / "bin")
    env["PATH"] = f"{binDir}{os.pathsep}{currentPath}" if currentPath else binDir
    logger.debug("Using toolchain at '%s'", home)
    return env
