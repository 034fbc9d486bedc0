"""Typed configuration for a deployment run.

A ``DeployConfig`` value is built once per run and handed to every component
that needs it; no component keeps mutable cluster state of its own.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, PositiveFloat


class FetchSettings(BaseModel):
    """Release API access and network bounds."""

    api_url: str = "https://api.github.com"
    token: str | None = None
    asset_name_template: str = "release-{tag}.tar"

    # Seconds
    connect_timeout: PositiveFloat = 5.0
    tls_handshake_timeout: PositiveFloat = 5.0
    response_header_timeout: PositiveFloat = 5.0
    request_timeout: PositiveFloat = 30.0


class ClusterSettings(BaseModel):
    """Which cluster to talk to."""

    kubeconfig: Path | None = None
    context: str | None = None
    default_namespace: str = "default"


class ManifestSettings(BaseModel):
    """Server-side apply behaviour for raw manifests."""

    field_manager: str = "lube-ctl"
    apply_delay: float = Field(default=0.5, ge=0)


class ChartSettings(BaseModel):
    """Helm install/upgrade behaviour."""

    timeout_seconds: int = Field(default=300, gt=0)
    dependency_update: bool = True
    values_file: str = "values.yaml"
    domain_placeholder: str = "__DOMAIN__"
    domain: str | None = None


class DeployConfig(BaseModel):
    """Complete configuration for one deployment run."""

    descriptor_name: str = "lube.yaml"
    run_timeout: PositiveFloat | None = None

    fetch: FetchSettings = Field(default_factory=FetchSettings)
    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    manifests: ManifestSettings = Field(default_factory=ManifestSettings)
    charts: ChartSettings = Field(default_factory=ChartSettings)
