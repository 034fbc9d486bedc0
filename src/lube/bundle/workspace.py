"""Ephemeral workspace directories for extracted bundles."""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

WORKSPACE_PREFIX = "lube.deployments."


@contextmanager
def workspace(prefix: str = WORKSPACE_PREFIX) -> Iterator[Path]:
    """Create a temporary workspace that is removed on every exit path.

    Example:
        with workspace() as root:
            safe_extract(archive, root)
    """
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        root = Path(tmp)
        logger.debug(f"Created workspace {root}")
        try:
            yield root
        finally:
            logger.debug(f"Removing workspace {root}")
