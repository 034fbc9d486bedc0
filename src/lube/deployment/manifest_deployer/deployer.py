"""Apply every object of a manifest file to the cluster."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from ...config import ManifestSettings
from ...errors import ManifestError
from ...infra.k8s import ClusterController
from ..base import BaseDeployer
from .decoder import decode_documents


class ManifestDeployer(BaseDeployer):
    """Applies raw, possibly multi-document, manifest files.

    Each object is resolved to its REST endpoint, stamped with the entry's
    namespace when namespace-scoped, and sent as a server-side apply with a
    constant field manager so repeated runs converge. The first failure
    aborts the file; objects applied before it stay applied.
    """

    name = "ManifestDeployer"

    def __init__(
        self,
        cluster: ClusterController,
        settings: ManifestSettings | None = None,
    ) -> None:
        """Initialize the manifest deployer.

        Args:
            cluster: Cluster controller used for discovery and apply
            settings: Field manager identity and apply pacing
        """
        self.cluster = cluster
        self.settings = settings or ManifestSettings()

    async def deploy_path(self, path: Path, namespace: str | None) -> int:
        """Apply all objects in the file at ``path``.

        Returns:
            Number of objects applied
        """
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"Could not read manifest {path.name}", details=str(e)) from e

        applied = 0
        for obj in decode_documents(text):
            endpoint = await self.cluster.resolve_endpoint(obj.api_version, obj.kind)
            if namespace and endpoint.namespaced:
                obj = obj.with_namespace(namespace)

            # Pace requests against the API server
            if self.settings.apply_delay:
                await asyncio.sleep(self.settings.apply_delay)

            await self.cluster.apply_object(endpoint, obj, self.settings.field_manager)
            applied += 1
            logger.debug(f"Applied {obj.describe()}")

        logger.info(f"Applied {applied} objects from {path.name}")
        return applied
