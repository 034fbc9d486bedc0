"""Deployers for bundle entries and the orchestrator that drives them."""

from .base import BaseDeployer
from .chart_deployer import ChartDeployer, ReleaseAction
from .manifest_deployer import ManifestDeployer
from .orchestrator import DeployState, EntryOutcome, Orchestrator

__all__ = [
    "BaseDeployer",
    "ChartDeployer",
    "DeployState",
    "EntryOutcome",
    "ManifestDeployer",
    "Orchestrator",
    "ReleaseAction",
]
