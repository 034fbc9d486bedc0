"""Data types for shell command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmRevision",
]


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined output, stderr first, for error reports."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)


@dataclass
class HelmRevision:
    """One entry of a release's history.

    Attributes:
        revision: Release revision number
        status: Revision status (deployed, failed, superseded, ...)
        chart: Chart name and version
        app_version: Application version of the chart
        description: Helm's description of the operation
    """

    revision: int
    status: str
    chart: str = ""
    app_version: str = ""
    description: str = ""
