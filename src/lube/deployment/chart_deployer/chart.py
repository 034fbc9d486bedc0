"""Chart loading, validation and domain substitution.

Charts are validated locally before helm is invoked, so a structurally broken
chart never reaches the cluster.
"""

from __future__ import annotations

import re
import tarfile
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ...errors import InvalidChartError

CHART_FILE = "Chart.yaml"

# Helm accepts loose SemVer: optional "v" prefix, minor/patch may be omitted
SEMVER_PATTERN = re.compile(
    r"^v?\d+(\.\d+){0,2}(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?$"
)


class ChartMetadata(BaseModel):
    """Validated contents of a Chart.yaml."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    api_version: Literal["v1", "v2"] = Field(alias="apiVersion")
    name: str = Field(min_length=1)
    version: str
    type: Literal["application", "library"] = "application"
    app_version: str | None = Field(default=None, alias="appVersion")

    @field_validator("version")
    @classmethod
    def _validate_version(cls, value: str) -> str:
        if not SEMVER_PATTERN.match(value):
            raise ValueError(f"version {value!r} is not a valid SemVer")
        return value


def _read_packaged_file(path: Path, filename: str) -> str | None:
    """Return the text of ``<name>/<filename>`` inside a packaged chart, if present."""
    try:
        with tarfile.open(path, mode="r:*") as tar:
            for member in tar:
                parts = member.name.strip("/").split("/")
                if len(parts) == 2 and parts[1] == filename and member.isfile():
                    source = tar.extractfile(member)
                    if source is None:
                        break
                    with source:
                        return source.read().decode("utf-8")
    except (tarfile.TarError, OSError, UnicodeDecodeError) as e:
        raise InvalidChartError(f"Could not read chart archive {path.name}", details=str(e)) from e

    return None


def _read_packaged_chart_file(path: Path) -> str:
    content = _read_packaged_file(path, CHART_FILE)
    if content is None:
        raise InvalidChartError(f"Chart archive {path.name} contains no {CHART_FILE}")
    return content


def load_chart(path: Path) -> ChartMetadata:
    """Load and validate a chart from a directory or a packaged archive.

    Raises:
        InvalidChartError: If the chart is missing, unreadable or invalid
    """
    if path.is_dir():
        chart_file = path / CHART_FILE
        if not chart_file.is_file():
            raise InvalidChartError(f"Chart directory {path.name} has no {CHART_FILE}")
        content = chart_file.read_text(encoding="utf-8")
    elif path.is_file():
        content = _read_packaged_chart_file(path)
    else:
        raise InvalidChartError(f"Chart {path} does not exist")

    try:
        raw: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise InvalidChartError(f"{CHART_FILE} of {path.name} is not valid YAML", details=str(e)) from e
    if not isinstance(raw, dict):
        raise InvalidChartError(f"{CHART_FILE} of {path.name} is not a mapping")

    try:
        metadata = ChartMetadata.model_validate(raw)
    except ValidationError as e:
        raise InvalidChartError(f"Chart {path.name} failed validation", details=str(e)) from e

    if metadata.type == "library":
        raise InvalidChartError(f"Chart {metadata.name} is a library chart and cannot be installed")

    logger.debug(f"Loaded chart {metadata.name} {metadata.version}")
    return metadata


def substitute_domain(
    chart_path: Path,
    domain: str,
    *,
    values_file: str = "values.yaml",
    placeholder: str = "__DOMAIN__",
) -> bool:
    """Replace ``placeholder`` with ``domain`` in the chart's default values.

    Plain text replacement, only for chart directories whose values file
    exists. Packaged charts go through ``render_packaged_values``.

    Returns:
        True if the values file was rewritten
    """
    values_path = chart_path / values_file
    if not chart_path.is_dir() or not values_path.is_file():
        return False

    content = values_path.read_text(encoding="utf-8")
    if placeholder not in content:
        return False

    values_path.write_text(content.replace(placeholder, domain), encoding="utf-8")
    logger.debug(f"Substituted domain in {values_path}")
    return True


def render_packaged_values(
    chart_path: Path,
    domain: str,
    *,
    values_file: str = "values.yaml",
    placeholder: str = "__DOMAIN__",
) -> str | None:
    """Return a packaged chart's default values with ``placeholder`` replaced.

    The archive itself is left untouched; the caller hands the result to helm
    as an extra values file, which overrides the packaged defaults.

    Returns:
        The substituted values text, or None when the archive has no values
        file or the file does not contain the placeholder

    Raises:
        InvalidChartError: If the archive cannot be read
    """
    content = _read_packaged_file(chart_path, values_file)
    if content is None or placeholder not in content:
        return None

    logger.debug(f"Substituted domain in {chart_path.name}:{values_file}")
    return content.replace(placeholder, domain)
