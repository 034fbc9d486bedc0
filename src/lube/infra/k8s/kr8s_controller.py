"""Kr8s-based implementation of ClusterController.

Uses the kr8s library for native async Kubernetes operations. Discovery
documents are cached per group/version for the lifetime of the controller,
which is one deployment run, and refreshed when a kind is missing from them.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import kr8s
from kr8s.asyncio.objects import Namespace
from loguru import logger

from ...errors import (
    ApplyError,
    NamespaceError,
    NamespaceExistsError,
    ResourceResolutionError,
)
from .controller import ClusterController, ClusterTarget, ResourceEndpoint, ResourceObject

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


def _status_code(error: kr8s.ServerError | httpx.HTTPStatusError) -> int | None:
    response = getattr(error, "response", None)
    return response.status_code if response is not None else None


class Kr8sController(ClusterController):
    """Cluster controller using the kr8s library.

    The kr8s API client is bound to the event loop it was created in, so it
    is created lazily on first use inside the running loop.
    """

    def __init__(
        self,
        target: ClusterTarget | None = None,
        *,
        default_namespace: str = "default",
    ) -> None:
        """Initialize the kr8s controller.

        Args:
            target: Kubeconfig and context to connect with
            default_namespace: Namespace for namespaced objects that name none
        """
        self.target = target or ClusterTarget()
        self.default_namespace = default_namespace
        self._api: Any = None
        self._discovery: dict[str, list[dict[str, Any]]] = {}

    async def _get_api(self) -> Any:  # Returns kr8s.asyncio.Api
        if self._api is None:
            kubeconfig = str(self.target.kubeconfig) if self.target.kubeconfig else None
            self._api = await kr8s.asyncio.api(
                kubeconfig=kubeconfig,
                context=self.target.context,
            )
        return self._api

    # =========================================================================
    # Discovery
    # =========================================================================

    async def _api_resources(self, group_version: str) -> list[dict[str, Any]]:
        """Fetch (and cache) the resource list served for a group/version."""
        if group_version in self._discovery:
            return self._discovery[group_version]

        api = await self._get_api()
        base = "/apis" if "/" in group_version else "/api"
        try:
            async with api.call_api(
                "GET", version="", base=base, url=group_version
            ) as response:
                resources: list[dict[str, Any]] = response.json().get("resources", [])
        except (kr8s.ServerError, httpx.HTTPStatusError) as e:
            # Unknown groups answer 404, sometimes with a plain-text body
            if _status_code(e) != HTTP_NOT_FOUND:
                raise ResourceResolutionError(
                    f"Discovery failed for {group_version}", details=str(e)
                ) from e
            resources = []
        except httpx.HTTPError as e:
            raise ResourceResolutionError(
                f"Discovery failed for {group_version}", details=str(e)
            ) from e

        self._discovery[group_version] = resources
        return resources

    @staticmethod
    def _find_kind(resources: list[dict[str, Any]], kind: str) -> dict[str, Any] | None:
        for resource in resources:
            # Subresources such as deployments/scale share the kind
            if resource.get("kind") == kind and "/" not in resource.get("name", ""):
                return resource
        return None

    async def resolve_endpoint(self, group_version: str, kind: str) -> ResourceEndpoint:
        """Map a group/version/kind to its REST endpoint and scope.

        A miss against a cached discovery document refetches it once, since an
        earlier entry may have installed the CRD serving ``kind``.
        """
        cached = group_version in self._discovery
        resource = self._find_kind(await self._api_resources(group_version), kind)
        if resource is None and cached:
            logger.debug(f"{kind} not in cached discovery for {group_version}, refreshing")
            del self._discovery[group_version]
            resource = self._find_kind(await self._api_resources(group_version), kind)

        if resource is not None:
            endpoint = ResourceEndpoint(
                group_version=group_version,
                kind=kind,
                plural=resource["name"],
                namespaced=bool(resource.get("namespaced")),
            )
            logger.debug(f"Resolved {group_version} {kind} to {endpoint.plural}")
            return endpoint

        raise ResourceResolutionError(
            f"No resource found for kind {kind} in {group_version}",
            details="Is the CRD installed, or the apiVersion misspelled?",
        )

    # =========================================================================
    # Resource Operations
    # =========================================================================

    async def apply_object(
        self,
        endpoint: ResourceEndpoint,
        obj: ResourceObject,
        field_manager: str,
    ) -> dict[str, Any]:
        """Create or update an object with server-side apply."""
        api = await self._get_api()
        namespace = (obj.namespace or self.default_namespace) if endpoint.namespaced else None

        try:
            async with api.call_api(
                "PATCH",
                version=endpoint.group_version,
                base=endpoint.api_base,
                namespace=namespace,
                url=f"{endpoint.plural}/{obj.name}",
                params={"fieldManager": field_manager},
                headers={"Content-Type": APPLY_PATCH_CONTENT_TYPE},
                content=json.dumps(obj.manifest),
            ) as response:
                applied: dict[str, Any] = response.json()
        except kr8s.ServerError as e:
            raise ApplyError(f"Apply of {obj.describe()} was rejected", details=str(e)) from e
        except httpx.HTTPError as e:
            raise ApplyError(f"Apply of {obj.describe()} failed", details=str(e)) from e

        return applied

    # =========================================================================
    # Namespace Operations
    # =========================================================================

    async def create_namespace(self, namespace: str) -> None:
        """Create a namespace, distinguishing 'already exists' from other errors."""
        api = await self._get_api()
        ns = Namespace(
            {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": namespace}},
            api=api,
        )
        try:
            await ns.create()
        except (kr8s.ServerError, httpx.HTTPStatusError) as e:
            if _status_code(e) == HTTP_CONFLICT:
                raise NamespaceExistsError(f"Namespace {namespace} already exists") from e
            raise NamespaceError(
                f"Could not create namespace {namespace}", details=str(e)
            ) from e
        except httpx.HTTPError as e:
            raise NamespaceError(
                f"Could not create namespace {namespace}", details=str(e)
            ) from e

        logger.info(f"Created namespace {namespace}")

    async def close(self) -> None:
        self._api = None
        self._discovery.clear()
