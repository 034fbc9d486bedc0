"""Install or upgrade a chart as one atomic helm operation.

The install-vs-upgrade decision reads the release history first and then
acts. Nothing on the cluster side locks the release between the two steps,
so two concurrent runs deploying the same release name can race.
"""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from loguru import logger

from ...config import ChartSettings
from ...errors import HelmCommandError, ReleaseError
from ...infra.k8s import ClusterTarget
from ..base import BaseDeployer
from ..shell_commands import CommandResult, HelmCommands
from .chart import load_chart, render_packaged_values, substitute_domain
from .release import release_name


class ReleaseAction(str, Enum):
    """Which helm operation a chart deployment performs."""

    INSTALL = "install"
    UPGRADE = "upgrade"


class ChartDeployer(BaseDeployer):
    """Deploys packaged or expanded Helm charts.

    Handles:
    - Deterministic release naming from the chart path
    - Optional domain substitution in the chart's default values
    - Local chart validation before any cluster mutation
    - Install when the release is unknown, upgrade otherwise
    - Atomic execution: helm rolls back on failure or timeout
    """

    name = "ChartDeployer"

    def __init__(
        self,
        helm: HelmCommands,
        settings: ChartSettings | None = None,
        *,
        target: ClusterTarget | None = None,
        default_namespace: str = "default",
    ) -> None:
        """Initialize the chart deployer.

        Args:
            helm: Helm command executor
            settings: Timeout, dependency and substitution settings
            target: Kubeconfig and context passed to every helm call
            default_namespace: Namespace used when the entry names none
        """
        self.helm = helm
        self.settings = settings or ChartSettings()
        self.target = target
        self.default_namespace = default_namespace

    async def choose_action(self, name: str, namespace: str) -> ReleaseAction:
        """Pick install or upgrade from the release's latest history entry."""
        try:
            revision = await asyncio.to_thread(
                self.helm.last_revision, name, namespace, target=self.target
            )
        except HelmCommandError as e:
            logger.warning(
                f"History lookup for {name} failed ({e.message}), treating it as existing"
            )
            return ReleaseAction.UPGRADE

        if revision is None:
            return ReleaseAction.INSTALL
        logger.debug(f"Release {name} is at revision {revision.revision} ({revision.status})")
        return ReleaseAction.UPGRADE

    def _apply_domain(self, path: Path, scratch: Path) -> list[Path]:
        """Substitute the configured domain into the chart's default values.

        Chart directories are rewritten in place. For a packaged chart the
        substituted values are written under ``scratch`` and returned as an
        extra values file for helm.
        """
        domain = self.settings.domain
        if not domain:
            return []

        if path.is_dir():
            substitute_domain(
                path,
                domain,
                values_file=self.settings.values_file,
                placeholder=self.settings.domain_placeholder,
            )
            return []

        rendered = render_packaged_values(
            path,
            domain,
            values_file=self.settings.values_file,
            placeholder=self.settings.domain_placeholder,
        )
        if rendered is None:
            return []
        values_path = scratch / f"{path.name}.domain-values.yaml"
        values_path.write_text(rendered, encoding="utf-8")
        return [values_path]

    async def _run(
        self,
        action: ReleaseAction,
        name: str,
        path: Path,
        namespace: str,
        value_files: Sequence[Path] = (),
    ) -> CommandResult:
        timeout = f"{self.settings.timeout_seconds}s"
        try:
            if action is ReleaseAction.INSTALL:
                return await asyncio.to_thread(
                    self.helm.install,
                    name,
                    path,
                    namespace,
                    timeout=timeout,
                    create_namespace=True,
                    dependency_update=self.settings.dependency_update,
                    target=self.target,
                    value_files=value_files,
                )
            return await asyncio.to_thread(
                self.helm.upgrade,
                name,
                path,
                namespace,
                timeout=timeout,
                dependency_update=self.settings.dependency_update,
                target=self.target,
                value_files=value_files,
            )
        except FileNotFoundError as e:
            raise HelmCommandError("helm executable not found", details=str(e)) from e

    async def deploy_path(self, path: Path, namespace: str | None) -> ReleaseAction:
        """Install or upgrade the chart at ``path``.

        Returns:
            The action that was performed

        Raises:
            InvalidChartError: If the chart does not validate
            ReleaseError: If helm fails (the release has been rolled back)
        """
        namespace = namespace or self.default_namespace
        name = release_name(path)

        chart = load_chart(path)
        with tempfile.TemporaryDirectory(prefix="lube.values.") as scratch:
            value_files = self._apply_domain(path, Path(scratch))
            action = await self.choose_action(name, namespace)
            logger.info(
                f"Running helm {action.value} for release {name} "
                f"(chart {chart.name} {chart.version}) in {namespace}"
            )
            result = await self._run(action, name, path, namespace, value_files)

        if not result.success:
            raise ReleaseError(
                f"helm {action.value} of release {name} failed",
                details=result.output,
            )

        logger.info(f"Release {name} {action.value} complete")
        return action
