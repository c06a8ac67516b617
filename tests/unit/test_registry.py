"""
Unit Tests - Provider registry
"""
import threading
from dataclasses import replace

import pytest

from src.compliance import (
    ProviderRegistry,
    SouthAfricaComplianceProvider,
    UnsupportedJurisdiction,
    build_default_registry,
)


class TestProviderRegistry:
    """Tests for provider registration and lookup"""

    @pytest.mark.unit
    def test_default_registry_has_south_africa(self):
        registry = build_default_registry()
        assert registry.supported_countries() == ["ZA"]
        assert registry.get("za").currency == "ZAR"

    @pytest.mark.unit
    def test_unsupported_jurisdiction(self):
        registry = build_default_registry()
        with pytest.raises(UnsupportedJurisdiction) as exc_info:
            registry.get("KE")
        assert exc_info.value.details["supported"] == ["ZA"]
        assert not registry.is_supported("KE")

    @pytest.mark.unit
    def test_register_replaces_immediately(self):
        registry = ProviderRegistry()
        provider_a = SouthAfricaComplianceProvider()
        config_b = replace(SouthAfricaComplianceProvider.default_config(), rule_version="ZA-2025.03")
        provider_b = SouthAfricaComplianceProvider(config_b)

        registry.register("ZA", provider_a)
        assert registry.get("ZA") is provider_a

        registry.register("ZA", provider_b)
        assert registry.get("ZA") is provider_b
        assert registry.get("ZA").rule_version == "ZA-2025.03"

    @pytest.mark.unit
    def test_register_requires_code(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register("  ", SouthAfricaComplianceProvider())

    @pytest.mark.unit
    def test_list_jurisdictions(self):
        jurisdictions = build_default_registry().list_jurisdictions()
        assert jurisdictions[0]["country_code"] == "ZA"
        assert jurisdictions[0]["vat_rate"] == "15"

    @pytest.mark.unit
    def test_concurrent_reads_during_registration(self):
        """Readers always see a complete provider while writers swap"""
        registry = build_default_registry()
        providers = [SouthAfricaComplianceProvider() for _ in range(5)]
        failures = []

        def reader():
            for _ in range(500):
                try:
                    assert registry.get("ZA").country_code == "ZA"
                except Exception as e:
                    failures.append(e)

        def writer():
            for provider in providers * 20:
                registry.register("ZA", provider)

        threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert failures == []
        assert registry.get("ZA") is providers[-1]
