"""Deterministic release names for charts."""

from pathlib import Path

CHART_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")


def release_name(path: str | Path) -> str:
    """Derive the release name from a chart path.

    The directory part and the file extension are dropped and the result is
    lower-cased, so ``/tmp/a/b/ertia-core.tgz`` and ``/tmp/a/b/ertia-core``
    both become ``ertia-core``.
    """
    base = Path(path).name
    for suffix in CHART_ARCHIVE_SUFFIXES:
        if base.lower().endswith(suffix):
            return base[: -len(suffix)].lower()
    return Path(base).stem.lower()
