# modsmith/core/errors.py
from __future__ import annotations

__all__ = [
    "PipelineError",
    "ConfigurationError",
    "ArtifactNotFoundError",
    "BuildToolError",
    "InvalidArchiveError",
    "NothingToExportError",
    "OperationCancelledError",
    "WorldNotFoundError",
    "ProfileNotFoundError",
]



class PipelineError(Exception):
    """Base class for every error the build & artifact pipeline raises on purpose."""
    pass



class ConfigurationError(PipelineError):
    """
    User-correctable setup problem: missing project directory, unconfigured
    deployment root, invalid settings. Never retried.
    """
    pass



class ArtifactNotFoundError(PipelineError, LookupError):
    pass



class BuildToolError(PipelineError):
    """The external build command could not be started at all."""
    pass



class InvalidArchiveError(PipelineError):
    """Archive is not a zip, lacks its manifest entry, or carries unsafe entry paths."""
    pass



class NothingToExportError(PipelineError):
    pass



class OperationCancelledError(PipelineError):
    pass



class WorldNotFoundError(PipelineError, LookupError):
    pass



class ProfileNotFoundError(PipelineError, LookupError):
    pass
