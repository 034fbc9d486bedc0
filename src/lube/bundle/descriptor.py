"""Read the bundle descriptor into ordered deploy entries.

The descriptor lives at the bundle root and looks like::

    deployments:
      - id: 1
        type: manifest
        file: crds/certificates.yaml
      - id: 2
        type: chart
        file: charts/ertia-core.tgz
        namespace: ertia

A bare top-level list of entries is accepted as well.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from ..errors import (
    DescriptorMalformedError,
    DescriptorMissingError,
    OutOfOrderEntryError,
    UnknownDeployTypeError,
)
from .models import DeployEntry, DeploymentBundle, DeployType

DESCRIPTOR_NAME = "lube.yaml"


def _entries_section(loaded: Any) -> list[Any]:
    if isinstance(loaded, list):
        return loaded
    if isinstance(loaded, dict) and isinstance(loaded.get("deployments"), list):
        return loaded["deployments"]
    raise DescriptorMalformedError(
        "Descriptor must be a list of entries or contain a 'deployments' list"
    )


def _names_unknown_type(error: ValidationError) -> bool:
    return any(item["loc"] == ("type",) and item["type"] == "enum" for item in error.errors())


def parse_entries(content: str) -> tuple[DeployEntry, ...]:
    """Parse descriptor text into deploy entries, keeping document order.

    Raises:
        DescriptorMalformedError: If the YAML is invalid or an entry fails validation
        UnknownDeployTypeError: If an entry names a type lube cannot deploy
    """
    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DescriptorMalformedError("Descriptor is not valid YAML", details=str(e)) from e

    entries = []
    for index, raw in enumerate(_entries_section(loaded), start=1):
        if not isinstance(raw, dict):
            raise DescriptorMalformedError(f"Descriptor entry {index} is not a mapping")
        try:
            entries.append(DeployEntry(**raw))
        except (ValidationError, TypeError) as e:
            if isinstance(e, ValidationError) and _names_unknown_type(e):
                known = ", ".join(t.value for t in DeployType)
                raise UnknownDeployTypeError(
                    f"Descriptor entry {raw.get('id', index)} has unknown type {raw['type']!r}",
                    details=f"Known types: {known}",
                ) from e
            raise DescriptorMalformedError(
                f"Descriptor entry {index} is invalid", details=str(e)
            ) from e
    return tuple(entries)


def check_entry_order(entries: Sequence[DeployEntry]) -> None:
    """Verify that entry ids equal their 1-based positions.

    Raises:
        OutOfOrderEntryError: On the first gap or reordering
    """
    for position, entry in enumerate(entries, start=1):
        if entry.id != position:
            raise OutOfOrderEntryError(position, entry.id)


def read_descriptor(root: Path, name: str = DESCRIPTOR_NAME) -> DeploymentBundle:
    """Read ``root/name`` into a DeploymentBundle.

    Raises:
        DescriptorMissingError: If the file does not exist
        DescriptorMalformedError: If the file is not well-formed
    """
    path = root / name
    if not path.is_file():
        raise DescriptorMissingError(
            f"Bundle descriptor {name} not found",
            details=f"Looked for {path}",
        )

    entries = parse_entries(path.read_text(encoding="utf-8"))
    logger.info(f"Found {len(entries)} deployments in {path}")
    return DeploymentBundle(root=root, entries=entries)
