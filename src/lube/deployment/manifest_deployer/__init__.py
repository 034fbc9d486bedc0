"""Raw manifest deployment via server-side apply."""

from .decoder import decode_documents
from .deployer import ManifestDeployer

__all__ = ["ManifestDeployer", "decode_documents"]
