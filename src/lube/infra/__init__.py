"""External collaborators: release API client and cluster boundary."""
