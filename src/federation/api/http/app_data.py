from dataclasses import dataclass

from src.federation.core.services import FederationProvider, FederationProviderFactory
from src.federation.runtime.settings import BridgeSettings


@dataclass
class ApplicationDependencies:
    settings: BridgeSettings
    provider_factory: FederationProviderFactory
    provider: FederationProvider
