"""
Provider registry - Jurisdiction code to compliance provider.

Built once at process start and passed to consumers (FastAPI app state,
Celery task construction). Reads are lock-free against an immutable
snapshot; ``register`` swaps in a new snapshot under a lock, so a reader
sees either the old or the new mapping, never a partial one.
"""
import threading
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

import structlog

from .exceptions import UnsupportedJurisdiction
from .providers import ComplianceProvider, SouthAfricaComplianceProvider

logger = structlog.get_logger()


class ProviderRegistry:
    """Registry for jurisdiction compliance providers"""

    def __init__(self):
        self._lock = threading.Lock()
        self._providers: Mapping[str, ComplianceProvider] = MappingProxyType({})

    @staticmethod
    def _normalize(code: str) -> str:
        return (code or "").strip().upper()

    def register(self, code: str, provider: ComplianceProvider) -> None:
        """Register or replace the provider for a country code."""
        key = self._normalize(code)
        if not key:
            raise ValueError("Country code is required")
        with self._lock:
            updated = dict(self._providers)
            replaced = key in updated
            updated[key] = provider
            self._providers = MappingProxyType(updated)
        logger.info(
            "compliance_provider_registered",
            country_code=key,
            provider=type(provider).__name__,
            replaced=replaced,
        )

    def get(self, code: str) -> ComplianceProvider:
        """
        Get the provider for a country code.

        Raises:
            UnsupportedJurisdiction: if no provider is registered
        """
        providers = self._providers
        provider = providers.get(self._normalize(code))
        if provider is None:
            raise UnsupportedJurisdiction(code, supported=sorted(providers))
        return provider

    def is_supported(self, code: str) -> bool:
        return self._normalize(code) in self._providers

    def supported_countries(self) -> List[str]:
        return sorted(self._providers)

    def list_jurisdictions(self) -> List[Dict[str, Any]]:
        providers = self._providers
        return [providers[code].config.to_dict() for code in sorted(providers)]


def build_default_registry() -> ProviderRegistry:
    """Registry with every jurisdiction that ships with the platform."""
    registry = ProviderRegistry()
    registry.register("ZA", SouthAfricaComplianceProvider())
    return registry
