"""Abstract cluster controller interface.

Defines the small contract the deployers need from the Kubernetes API:
map a kind to its REST endpoint, server-side apply an object, and create a
namespace. Implementations can be backed by kr8s or by fakes in tests.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class ClusterTarget:
    """Which kubeconfig and context operations run against.

    Passed explicitly into every operation instead of living on deployer
    objects.
    """

    kubeconfig: Path | None = None
    context: str | None = None


@dataclass(frozen=True)
class ResourceEndpoint:
    """A kind resolved to its pluralized REST location."""

    group_version: str
    kind: str
    plural: str
    namespaced: bool

    @property
    def api_base(self) -> str:
        """'/api' for the core group, '/apis' for everything else."""
        return "/apis" if "/" in self.group_version else "/api"


@dataclass
class ResourceObject:
    """One decoded manifest document.

    Attributes:
        manifest: The full object as decoded from YAML
    """

    manifest: dict[str, Any] = field(default_factory=dict)

    @property
    def api_version(self) -> str:
        return str(self.manifest.get("apiVersion", ""))

    @property
    def kind(self) -> str:
        return str(self.manifest.get("kind") or "")

    @property
    def metadata(self) -> dict[str, Any]:
        return self.manifest.get("metadata") or {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or "")

    @property
    def namespace(self) -> str | None:
        namespace = self.metadata.get("namespace")
        return str(namespace) if namespace else None

    def with_namespace(self, namespace: str) -> ResourceObject:
        """Return a copy of the object placed in ``namespace``."""
        manifest = copy.deepcopy(self.manifest)
        manifest.setdefault("metadata", {})["namespace"] = namespace
        return ResourceObject(manifest)

    def describe(self) -> str:
        """Short human readable identity, e.g. 'apps/v1 Deployment web'."""
        return f"{self.api_version} {self.kind} {self.name}"


# =============================================================================
# Abstract Controller
# =============================================================================


class ClusterController(ABC):
    """Abstract base class for the cluster operations used by deployers.

    All methods are async; use `run_sync()` to call them from sync code.
    """

    @abstractmethod
    async def resolve_endpoint(self, group_version: str, kind: str) -> ResourceEndpoint:
        """Map a group/version/kind to its REST endpoint and scope.

        Args:
            group_version: e.g. "v1" or "apps/v1"
            kind: e.g. "Deployment"

        Returns:
            Resolved ResourceEndpoint

        Raises:
            ResourceResolutionError: If the cluster does not serve the kind
        """
        ...

    @abstractmethod
    async def apply_object(
        self,
        endpoint: ResourceEndpoint,
        obj: ResourceObject,
        field_manager: str,
    ) -> dict[str, Any]:
        """Create or update an object with server-side apply.

        Args:
            endpoint: Endpoint returned by resolve_endpoint
            obj: Object to apply
            field_manager: Field owner identity sent with the request

        Returns:
            The object as stored by the cluster

        Raises:
            ApplyError: If the cluster rejects the request
        """
        ...

    @abstractmethod
    async def create_namespace(self, namespace: str) -> None:
        """Create a namespace.

        Raises:
            NamespaceExistsError: If the namespace already exists
            NamespaceError: For any other failure
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release any client resources held by the controller."""
