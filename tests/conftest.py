import io
import tarfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import yaml
from loguru import logger

ArchiveBuilder = Callable[..., bytes]


def add_file(tar: tarfile.TarFile, name: str, content: bytes | str) -> None:
    """Add a regular file entry to an open tar archive."""
    data = content.encode() if isinstance(content, str) else content
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def make_archive(
    files: dict[str, bytes | str],
    *,
    compression: str = "",
    symlinks: dict[str, str] | None = None,
) -> bytes:
    """Build an in-memory tar archive.

    Entries are written in dict order, which lets tests place a traversal
    entry before or after legitimate files.
    """
    buffer = io.BytesIO()
    mode = f"w:{compression}" if compression else "w"
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for name, content in files.items():
            add_file(tar, name, content)
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buffer.getvalue()


def write_chart(
    root: Path,
    name: str = "ertia-core",
    *,
    version: str = "1.2.3",
    chart_type: str = "application",
    values: str | None = None,
) -> Path:
    """Create an expanded chart directory under ``root``."""
    chart_dir = root / name
    (chart_dir / "templates").mkdir(parents=True, exist_ok=True)
    (chart_dir / "Chart.yaml").write_text(
        yaml.safe_dump(
            {"apiVersion": "v2", "name": name, "version": version, "type": chart_type}
        )
    )
    if values is not None:
        (chart_dir / "values.yaml").write_text(values)
    return chart_dir


def package_chart(chart_dir: Path, destination: Path) -> Path:
    """Package a chart directory as ``<name>.tgz`` the way helm lays it out."""
    archive = destination / f"{chart_dir.name}.tgz"
    with tarfile.open(archive, mode="w:gz") as tar:
        tar.add(chart_dir, arcname=chart_dir.name)
    return archive


DESCRIPTOR = """\
deployments:
  - id: 1
    type: manifest
    file: crds/widgets.yaml
  - id: 2
    type: chart
    file: charts/ertia-core
    namespace: ertia
"""

WIDGET_CRD = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
"""


@pytest.fixture
def archive_builder() -> ArchiveBuilder:
    """Return the in-memory archive factory."""
    return make_archive


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    """An extracted bundle with one manifest entry and one chart entry."""
    root = tmp_path / "bundle"
    (root / "crds").mkdir(parents=True)
    (root / "crds" / "widgets.yaml").write_text(WIDGET_CRD)
    write_chart(root / "charts")
    (root / "lube.yaml").write_text(DESCRIPTOR)
    return root


@pytest.fixture
def captured_logs() -> Iterator[list[str]]:
    """Collect loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]))
    yield messages
    logger.remove(handler_id)
