"""Configuration models and loading."""

from .config_data import (
    ChartSettings,
    ClusterSettings,
    DeployConfig,
    FetchSettings,
    ManifestSettings,
)
from .config_loader import load_config

__all__ = [
    "ChartSettings",
    "ClusterSettings",
    "DeployConfig",
    "FetchSettings",
    "ManifestSettings",
    "load_config",
]
