"""Base deployer class shared by the manifest and chart deployers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class BaseDeployer(ABC):
    """Abstract base class for all deployers."""

    #: Human readable deployer name used in logs and error reports
    name: str = "Deployer"

    @abstractmethod
    async def deploy_path(self, path: Path, namespace: str | None) -> Any:
        """Deploy the file or chart at ``path``.

        Args:
            path: Absolute path inside the bundle workspace
            namespace: Target namespace, or None when the entry names none
        """
        ...
