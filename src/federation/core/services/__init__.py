"""Core services exports."""

from .admin_session import AdminSessionManager
from .directory_client import RemoteDirectoryClient, build_http_client
from .federation_provider import FederationProvider, FederationProviderFactory
from .tenant_scope import TenantScopeFilter

__all__ = [
    "AdminSessionManager",
    "FederationProvider",
    "FederationProviderFactory",
    "RemoteDirectoryClient",
    "TenantScopeFilter",
    "build_http_client",
]
