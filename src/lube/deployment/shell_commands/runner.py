"""Subprocess execution for external tools such as helm."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


class CommandRunner:
    """Runs a tool to completion and captures its output.

    A non-zero exit is reported through ``CommandResult.success``; callers
    decide what a failure means.
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd

    def run(self, cmd: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run ``cmd`` and return its exit status and output.

        Raises:
            FileNotFoundError: If the executable is not installed
        """
        args = [str(part) for part in cmd]
        logger.debug(f"$ {shlex.join(args)}")

        completed = subprocess.run(
            args,
            cwd=cwd or self.cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if completed.returncode:
            logger.debug(f"{args[0]} exited with status {completed.returncode}")

        return CommandResult(
            success=completed.returncode == 0,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            returncode=completed.returncode,
        )
