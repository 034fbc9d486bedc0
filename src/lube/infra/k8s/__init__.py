"""Kubernetes infrastructure abstraction layer.

This module provides a clean abstraction over the cluster operations the
deployers need, backed by the kr8s library.

Example:
    from lube.infra.k8s import Kr8sController, run_sync

    controller = Kr8sController()
    run_sync(controller.create_namespace("my-namespace"))
"""

from .controller import (
    ClusterController,
    ClusterTarget,
    ResourceEndpoint,
    ResourceObject,
)
from .kr8s_controller import Kr8sController
from .utils import run_sync

__all__ = [
    # Controller classes
    "ClusterController",
    "Kr8sController",
    # Data classes
    "ClusterTarget",
    "ResourceEndpoint",
    "ResourceObject",
    # Utilities
    "run_sync",
]
