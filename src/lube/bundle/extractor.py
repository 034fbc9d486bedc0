"""Safe tar extraction into a workspace.

Only regular files are materialized. Every entry is checked against the
destination root before it is written, so a traversal entry such as
``../../etc/passwd`` aborts extraction before anything is written for it.
"""

from __future__ import annotations

import io
import shutil
import tarfile
from pathlib import Path
from typing import BinaryIO

from loguru import logger

from ..errors import ExtractionError, IllegalPathError

ArchiveSource = bytes | Path | BinaryIO


def _open_archive(archive: ArchiveSource) -> tarfile.TarFile:
    """Open a plain or compressed tar stream."""
    try:
        if isinstance(archive, bytes):
            return tarfile.open(fileobj=io.BytesIO(archive), mode="r:*")
        if isinstance(archive, Path):
            return tarfile.open(archive, mode="r:*")
        return tarfile.open(fileobj=archive, mode="r:*")
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError("Could not open archive", details=str(e)) from e


def resolve_member_path(root: Path, name: str) -> Path:
    """Resolve an archive entry name under ``root``.

    Args:
        root: Already-resolved destination root
        name: Entry name as stored in the archive

    Returns:
        Absolute destination path

    Raises:
        IllegalPathError: If the path is not a strict descendant of root
    """
    target = (root / name).resolve()
    if target == root or root not in target.parents:
        raise IllegalPathError(name, str(root))
    return target


def safe_extract(archive: ArchiveSource, destination: Path) -> list[Path]:
    """Extract every regular file of a tar archive under ``destination``.

    Directory entries are skipped; parent directories are created per file.
    Symlinks, hard links, devices and FIFOs are skipped as well.

    Args:
        archive: Archive bytes, a path to an archive, or a binary stream
        destination: Workspace root

    Returns:
        Paths of the files written, in archive order

    Raises:
        IllegalPathError: On the first entry escaping the root. Files written
            before it are left in place.
        ExtractionError: If the archive is corrupt or unreadable
    """
    root = destination.resolve()
    written: list[Path] = []

    with _open_archive(archive) as tar:
        try:
            for member in tar:
                if member.isdir():
                    continue
                if not member.isfile():
                    logger.debug(f"Skipping non-regular archive entry {member.name}")
                    continue

                target = resolve_member_path(root, member.name)
                target.parent.mkdir(parents=True, exist_ok=True)

                source = tar.extractfile(member)
                if source is None:
                    continue
                with source, open(target, "wb") as out:
                    shutil.copyfileobj(source, out)
                written.append(target)
        except tarfile.TarError as e:
            raise ExtractionError("Archive is corrupt", details=str(e)) from e

    logger.info(f"Extracted {len(written)} files into {root}")
    return written
