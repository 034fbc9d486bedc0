"""Deploy ordered bundles of Kubernetes manifests and Helm charts."""

__version__ = "0.1.0"
