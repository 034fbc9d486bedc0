"""Exception hierarchy for bundle deployments.

Every component raises a subclass of ``DeploymentError`` so the CLI can
render failures uniformly. Library exceptions are chained with ``from`` so the
original cause is never lost.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .bundle.models import DeployEntry


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


# =============================================================================
# Archive fetching
# =============================================================================


class FetchError(DeploymentError):
    """Raised when a release archive cannot be downloaded."""


class NotFoundError(FetchError):
    """The release API answered 404."""


class AssetNotFoundError(NotFoundError):
    """The release exists but carries no asset with the expected name."""


class BadRequestError(FetchError):
    """The release API answered 400."""


class UnauthorizedError(FetchError):
    """The release API answered 401."""


class ForbiddenError(FetchError):
    """The release API answered 403."""


class UnknownStatusError(FetchError):
    """The release API answered with an unmapped status code."""

    def __init__(self, status_code: int, details: str | None = None):
        self.status_code = status_code
        super().__init__(f"Unknown response code: {status_code}", details=details)


class AssetNotUploadedError(FetchError):
    """The release asset exists but is not in the uploaded state yet."""

    def __init__(self, asset_name: str, state: str):
        self.asset_name = asset_name
        self.state = state
        super().__init__(
            f"Asset {asset_name} is not uploaded yet",
            details=f"Current asset state: {state}",
        )


# =============================================================================
# Bundle handling
# =============================================================================


class ExtractionError(DeploymentError):
    """Raised when an archive cannot be unpacked."""


class IllegalPathError(ExtractionError):
    """An archive entry or deploy entry would escape the workspace root."""

    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(
            f"Illegal path {path!r}",
            details=f"Resolved location is outside of {root}",
        )


class DescriptorError(DeploymentError):
    """Raised when the bundle descriptor cannot be used."""


class DescriptorMissingError(DescriptorError):
    """The bundle has no descriptor file."""


class DescriptorMalformedError(DescriptorError):
    """The descriptor file is not well-formed."""


class OutOfOrderEntryError(DescriptorError):
    """A deploy entry's id does not match its position in the descriptor."""

    def __init__(self, position: int, entry_id: int):
        self.position = position
        self.entry_id = entry_id
        super().__init__(
            f"Deploy entry at position {position} has id {entry_id}",
            details="Entry ids must start at 1 and increase by one without gaps.",
        )


class UnknownDeployTypeError(DeploymentError):
    """No deployer is registered for a deploy entry's type."""


# =============================================================================
# Cluster operations
# =============================================================================


class NamespaceError(DeploymentError):
    """Raised when a namespace cannot be created."""


class NamespaceExistsError(NamespaceError):
    """The namespace already exists."""


class ManifestError(DeploymentError):
    """Base class for raw manifest failures."""


class ManifestDecodeError(ManifestError):
    """A manifest document could not be decoded."""


class ResourceResolutionError(ManifestError):
    """A resource kind could not be mapped to an API endpoint."""


class ApplyError(ManifestError):
    """The cluster rejected a server-side apply request."""


class ChartError(DeploymentError):
    """Base class for chart failures."""


class InvalidChartError(ChartError):
    """The chart failed to load or validate."""


class HelmCommandError(ChartError):
    """A helm invocation failed for a reason other than the one expected."""


class ReleaseError(ChartError):
    """Installing or upgrading a release failed (and was rolled back)."""


# =============================================================================
# Orchestration
# =============================================================================


class EntryDeploymentError(DeploymentError):
    """A deploy entry failed; the run stops here.

    The original error is available both as ``__cause__`` and ``cause``.
    """

    def __init__(self, entry: DeployEntry, deployer_name: str, cause: Exception):
        self.entry = entry
        self.deployer_name = deployer_name
        self.cause = cause
        cause_message = getattr(cause, "message", None) or str(cause)
        details = getattr(cause, "details", None)
        super().__init__(
            f"Entry {entry.id} ({entry.file}) failed in {deployer_name}: "
            f"{cause_message}",
            details=details,
        )


class RunTimeoutError(DeploymentError):
    """The whole deployment run exceeded its deadline."""

    def __init__(self, timeout: float, details: str | None = None):
        self.timeout = timeout
        super().__init__(f"Deployment run exceeded {timeout:g}s", details=details)
