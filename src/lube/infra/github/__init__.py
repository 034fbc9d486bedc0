"""Release asset download from the GitHub REST API."""

from .client import ReleaseClient, status_to_error

__all__ = ["ReleaseClient", "status_to_error"]
