"""Wrappers around external tools that lube shells out to.

Only helm is driven this way; manifests go through the Kubernetes API.

Usage:
    from lube.deployment.shell_commands import ShellCommands

    helm = ShellCommands().helm
    revision = helm.last_revision("ertia-core", "ertia")
"""

from pathlib import Path

from .helm import HelmCommands
from .runner import CommandRunner
from .types import CommandResult, HelmRevision


class ShellCommands:
    """Groups the tool wrappers around one CommandRunner.

    Attributes:
        helm: helm install/upgrade/history commands
    """

    def __init__(self, cwd: Path | None = None) -> None:
        runner = CommandRunner(cwd)
        self.helm = HelmCommands(runner)


__all__ = [
    "CommandResult",
    "CommandRunner",
    "HelmCommands",
    "HelmRevision",
    "ShellCommands",
]
