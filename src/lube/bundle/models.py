"""Data types describing a deployment bundle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, PositiveInt

from ..errors import IllegalPathError

# Namespace values meaning "no namespace for this entry"
NAMESPACE_NOT_APPLICABLE: frozenset[str] = frozenset({"", "-", "n/a"})


class DeployType(str, Enum):
    """How a deploy entry is applied to the cluster."""

    MANIFEST = "manifest"
    CHART = "chart"


class DeployEntry(BaseModel):
    """One ordered unit of work in a bundle.

    Attributes:
        id: 1-based position of the entry in the descriptor
        type: Which deployer handles the entry
        file: Path of the manifest file or chart, relative to the bundle root
        namespace: Target namespace, if any
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: PositiveInt
    type: DeployType
    file: str
    namespace: str | None = None

    @property
    def target_namespace(self) -> str | None:
        """Namespace to use, or None when the entry names no concrete one."""
        if self.namespace is None:
            return None
        namespace = self.namespace.strip()
        if namespace.lower() in NAMESPACE_NOT_APPLICABLE:
            return None
        return namespace


@dataclass(frozen=True)
class DeploymentBundle:
    """An extracted workspace plus its ordered deploy entries."""

    root: Path
    entries: tuple[DeployEntry, ...]

    def path_for(self, entry: DeployEntry) -> Path:
        """Resolve an entry's file inside the bundle root.

        Raises:
            IllegalPathError: If the file would resolve outside the root
        """
        root = self.root.resolve()
        target = (root / entry.file).resolve()
        if target == root or root not in target.parents:
            raise IllegalPathError(entry.file, str(root))
        return target
