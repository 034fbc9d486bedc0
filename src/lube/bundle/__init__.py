"""Deployment bundles: archive extraction, workspace and descriptor parsing."""

from .descriptor import check_entry_order, read_descriptor
from .extractor import safe_extract
from .models import DeployEntry, DeploymentBundle, DeployType
from .workspace import workspace

__all__ = [
    "DeployEntry",
    "DeployType",
    "DeploymentBundle",
    "check_entry_order",
    "read_descriptor",
    "safe_extract",
    "workspace",
]
