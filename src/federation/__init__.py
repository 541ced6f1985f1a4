"""Read-only federation bridge for a tenant-scoped remote account API."""

__version__ = "0.1.0"
