"""Helm chart deployment: release naming, chart validation and install/upgrade."""

from .chart import ChartMetadata, load_chart, render_packaged_values, substitute_domain
from .deployer import ChartDeployer, ReleaseAction
from .release import release_name

__all__ = [
    "ChartDeployer",
    "ChartMetadata",
    "ReleaseAction",
    "load_chart",
    "release_name",
    "render_packaged_values",
    "substitute_domain",
]
