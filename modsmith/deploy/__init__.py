# modsmith/deploy/__init__.py
from .manager import DeployResult, DeploymentManager

__all__ = ["DeployResult", "DeploymentManager"]
