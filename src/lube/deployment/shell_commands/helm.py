"""Helm command abstractions.

This module provides commands for Helm release management: history lookup
and atomic install/upgrade.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from ...errors import HelmCommandError
from .types import CommandResult, HelmRevision

if TYPE_CHECKING:
    from ...infra.k8s import ClusterTarget
    from .runner import CommandRunner

RELEASE_NOT_FOUND = "release: not found"

# Roll back everything the operation created when it fails
ATOMIC_FLAG = "--rollback-on-failure"


def _target_flags(target: ClusterTarget | None) -> list[str]:
    flags: list[str] = []
    if target is None:
        return flags
    if target.kubeconfig:
        flags.extend(["--kubeconfig", str(target.kubeconfig)])
    if target.context:
        flags.extend(["--kube-context", target.context])
    return flags


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release history queries
    - Atomic install and upgrade
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Release Management
    # =========================================================================

    def _release_command(
        self,
        action: str,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        timeout: str,
        atomic: bool,
        dependency_update: bool,
        target: ClusterTarget | None,
        value_files: Sequence[Path],
    ) -> list[str]:
        cmd = [
            "helm",
            action,
            release_name,
            str(chart_path),
            "--namespace",
            namespace,
        ]
        if atomic:
            cmd.extend([ATOMIC_FLAG, "--wait"])
        if dependency_update:
            cmd.append("--dependency-update")
        for values_path in value_files:
            cmd.extend(["-f", str(values_path)])
        cmd.extend(["--timeout", timeout])
        cmd.extend(_target_flags(target))
        return cmd

    def install(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        timeout: str = "300s",
        atomic: bool = True,
        create_namespace: bool = True,
        dependency_update: bool = True,
        target: ClusterTarget | None = None,
        value_files: Sequence[Path] = (),
    ) -> CommandResult:
        """Install a new Helm release.

        Args:
            release_name: Name for the Helm release
            chart_path: Packaged chart or chart directory
            namespace: Kubernetes namespace for deployment
            timeout: Maximum time to wait for resources to become ready
            atomic: Roll back everything on failure (implies --wait)
            create_namespace: Whether to create namespace if it doesn't exist
            dependency_update: Refresh chart dependencies before installing
            target: Kubeconfig and context to use
            value_files: Extra values files, passed with -f in order

        Returns:
            CommandResult with install status
        """
        cmd = self._release_command(
            "install",
            release_name,
            chart_path,
            namespace,
            timeout=timeout,
            atomic=atomic,
            dependency_update=dependency_update,
            target=target,
            value_files=value_files,
        )
        if create_namespace:
            cmd.append("--create-namespace")
        return self._runner.run(cmd)

    def upgrade(
        self,
        release_name: str,
        chart_path: Path,
        namespace: str,
        *,
        timeout: str = "300s",
        atomic: bool = True,
        dependency_update: bool = True,
        target: ClusterTarget | None = None,
        value_files: Sequence[Path] = (),
    ) -> CommandResult:
        """Upgrade an existing Helm release.

        Args:
            release_name: Name of the release to upgrade
            chart_path: Packaged chart or chart directory
            namespace: Kubernetes namespace of the release
            timeout: Maximum time to wait for resources to become ready
            atomic: Roll back to the previous revision on failure
            dependency_update: Refresh chart dependencies before upgrading
            target: Kubeconfig and context to use
            value_files: Extra values files, passed with -f in order

        Returns:
            CommandResult with upgrade status
        """
        cmd = self._release_command(
            "upgrade",
            release_name,
            chart_path,
            namespace,
            timeout=timeout,
            atomic=atomic,
            dependency_update=dependency_update,
            target=target,
            value_files=value_files,
        )
        return self._runner.run(cmd)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def history(
        self,
        release_name: str,
        namespace: str,
        max_revisions: int = 10,
        *,
        target: ClusterTarget | None = None,
    ) -> CommandResult:
        """Run `helm history` and return the raw result.

        Args:
            release_name: Name of the release
            namespace: Kubernetes namespace
            max_revisions: Maximum number of revisions to return
            target: Kubeconfig and context to use
        """
        cmd = [
            "helm",
            "history",
            release_name,
            "-n",
            namespace,
            "-o",
            "json",
            "--max",
            str(max_revisions),
        ]
        cmd.extend(_target_flags(target))
        return self._runner.run(cmd)

    def last_revision(
        self,
        release_name: str,
        namespace: str,
        *,
        target: ClusterTarget | None = None,
    ) -> HelmRevision | None:
        """Get the most recent revision of a release.

        Returns:
            The latest HelmRevision, or None when helm reports the release
            as not found

        Raises:
            HelmCommandError: If helm fails for any other reason or prints
                unparsable output
        """
        result = self.history(release_name, namespace, max_revisions=1, target=target)
        if not result.success:
            if RELEASE_NOT_FOUND in result.output.lower():
                return None
            raise HelmCommandError(
                f"helm history {release_name} failed", details=result.output
            )

        try:
            history_data = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise HelmCommandError(
                f"helm history {release_name} returned invalid JSON",
                details=result.stdout,
            ) from e

        if not history_data:
            return None

        latest = max(history_data, key=lambda r: int(r.get("revision", 0)))
        return HelmRevision(
            revision=int(latest.get("revision", 0)),
            status=latest.get("status", ""),
            chart=latest.get("chart", ""),
            app_version=latest.get("app_version", ""),
            description=latest.get("description", ""),
        )
