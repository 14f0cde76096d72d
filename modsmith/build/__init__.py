# modsmith/build/__init__.py
from .command import CommandResult, runCommand
from .metadata import ProjectMetadata, readProjectMetadata
from .orchestrator import BuildOrchestrator, BuildResult, nextBuildNumber

__all__ = [
    "CommandResult",
    "runCommand",
    "ProjectMetadata",
    "readProjectMetadata",
    "BuildOrchestrator",
    "BuildResult",
    "nextBuildNumber",
]
