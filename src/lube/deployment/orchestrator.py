"""Drive one deployment run from archive to cluster.

A run moves through ``idle -> fetching -> extracting -> reading -> executing``
and ends in ``done`` or ``failed``. Entries are executed strictly in
descriptor order and the first failure stops the run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from ..bundle import (
    DeployEntry,
    DeploymentBundle,
    DeployType,
    check_entry_order,
    read_descriptor,
    safe_extract,
    workspace,
)
from ..bundle.extractor import ArchiveSource
from ..config import DeployConfig
from ..errors import (
    EntryDeploymentError,
    NamespaceExistsError,
    RunTimeoutError,
    UnknownDeployTypeError,
)
from ..infra.github import ReleaseClient
from ..infra.k8s import ClusterController
from .base import BaseDeployer


class DeployState(str, Enum):
    """Lifecycle of a deployment run."""

    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    READING = "reading"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class EntryOutcome:
    """What a deployer returned for one entry."""

    entry: DeployEntry
    deployer: str
    result: Any


class Orchestrator:
    """Executes a bundle's deploy entries in order.

    Attributes:
        state: Current DeployState of the run
        current_entry: Entry being executed, or the one that failed
    """

    def __init__(
        self,
        cluster: ClusterController,
        deployers: Mapping[DeployType, BaseDeployer],
        config: DeployConfig | None = None,
        *,
        fetcher: ReleaseClient | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            cluster: Controller used for namespace creation
            deployers: Deployer per deploy type
            config: Run configuration
            fetcher: Release client (built from ``config.fetch`` when omitted)
        """
        self.cluster = cluster
        self.deployers = dict(deployers)
        self.config = config or DeployConfig()
        self.fetcher = fetcher or ReleaseClient(self.config.fetch)
        self.state = DeployState.IDLE
        self.current_entry: DeployEntry | None = None

    def _transition(self, state: DeployState) -> None:
        logger.debug(f"Deployment state {self.state.value} -> {state.value}")
        self.state = state

    # =========================================================================
    # Entry points
    # =========================================================================

    async def deploy_release(self, owner: str, repo: str, tag: str) -> list[EntryOutcome]:
        """Fetch the release archive for ``tag`` and deploy it."""
        logger.info(f"Deploying release {tag} of {owner}/{repo}")
        return await self._bounded(
            self._fetch_and_deploy(lambda: self.fetcher.get_release_asset(owner, repo, tag))
        )

    async def deploy_url(self, url: str) -> list[EntryOutcome]:
        """Fetch an archive from ``url`` and deploy it."""
        return await self._bounded(self._fetch_and_deploy(lambda: self.fetcher.fetch_url(url)))

    async def deploy_archive(self, archive: ArchiveSource) -> list[EntryOutcome]:
        """Deploy a local archive (bytes, path or stream)."""
        return await self._bounded(self._extract_and_deploy(archive))

    async def deploy_directory(self, root: Path) -> list[EntryOutcome]:
        """Deploy an already extracted bundle in place."""
        return await self._bounded(self._read_and_deploy(root))

    # =========================================================================
    # Phases
    # =========================================================================

    async def _bounded(self, run: Awaitable[list[EntryOutcome]]) -> list[EntryOutcome]:
        """Await ``run`` under the optional run deadline, tracking failure."""
        timeout = self.config.run_timeout
        try:
            async with asyncio.timeout(timeout) as deadline:
                outcomes = await run
        except TimeoutError as e:
            self._transition(DeployState.FAILED)
            if deadline.expired():
                raise RunTimeoutError(timeout or 0.0) from e
            raise
        except BaseException:
            self._transition(DeployState.FAILED)
            raise
        finally:
            await self.cluster.close()

        self._transition(DeployState.DONE)
        logger.info(f"Deployment finished: {len(outcomes)} entries applied")
        return outcomes

    async def _fetch_and_deploy(
        self, fetch: Callable[[], Awaitable[bytes]]
    ) -> list[EntryOutcome]:
        self._transition(DeployState.FETCHING)
        archive = await fetch()
        return await self._extract_and_deploy(archive)

    async def _extract_and_deploy(self, archive: ArchiveSource) -> list[EntryOutcome]:
        with workspace() as root:
            self._transition(DeployState.EXTRACTING)
            safe_extract(archive, root)
            return await self._read_and_deploy(root)

    async def _read_and_deploy(self, root: Path) -> list[EntryOutcome]:
        self._transition(DeployState.READING)
        bundle = read_descriptor(root, self.config.descriptor_name)
        return await self.execute(bundle)

    # =========================================================================
    # Execution
    # =========================================================================

    def deployer_for(self, entry: DeployEntry) -> BaseDeployer:
        """Select the deployer registered for the entry's type.

        Raises:
            UnknownDeployTypeError: If no deployer handles the type
        """
        deployer = self.deployers.get(entry.type)
        if deployer is None:
            raise UnknownDeployTypeError(
                f"No deployer registered for type {entry.type.value!r}",
                details=f"Entry {entry.id} ({entry.file})",
            )
        return deployer

    async def ensure_namespace(self, namespace: str) -> None:
        """Create ``namespace``, tolerating only 'already exists'."""
        try:
            await self.cluster.create_namespace(namespace)
        except NamespaceExistsError:
            logger.info(f"Namespace {namespace} already exists")

    async def execute(self, bundle: DeploymentBundle) -> list[EntryOutcome]:
        """Run every entry of ``bundle`` in order, stopping at the first failure.

        The whole sequence is checked for id == position before the first
        entry touches the cluster.

        Raises:
            OutOfOrderEntryError: If an entry id does not match its position
            EntryDeploymentError: Wrapping the failure of an entry
        """
        check_entry_order(bundle.entries)
        self._transition(DeployState.EXECUTING)
        outcomes: list[EntryOutcome] = []

        for entry in bundle.entries:
            self.current_entry = entry
            registered = self.deployers.get(entry.type)
            deployer_name = registered.name if registered else "unregistered"
            logger.info(f"[{entry.id}/{len(bundle.entries)}] {entry.type.value} {entry.file}")

            try:
                deployer = self.deployer_for(entry)
                namespace = entry.target_namespace
                if namespace:
                    await self.ensure_namespace(namespace)
                result = await deployer.deploy_path(bundle.path_for(entry), namespace)
            except Exception as e:
                logger.error(f"Entry {entry.id} ({entry.file}) failed")
                raise EntryDeploymentError(entry, deployer_name, e) from e

            outcomes.append(EntryOutcome(entry=entry, deployer=deployer_name, result=result))

        return outcomes
