"""
Unit tests for the service catalogue and mode resolution.
"""

import pytest

from btpi_react.core.errors import ValidationError
from btpi_react.services import default_registry, validate_port_allocation
from btpi_react.services.registry import ServiceRegistry, order_by_dependencies

from conftest import StubService, tcp


class TestResolve:
    """Test which services each mode selects."""

    def test_full_mode(self):
        names = [service.name for service in default_registry().resolve("full")]

        assert names == [
            "kasm",
            "elasticsearch",
            "cassandra",
            "wazuh-indexer",
            "wazuh-manager",
            "velociraptor",
            "portainer",
        ]

    def test_simple_mode(self):
        names = [service.name for service in default_registry().resolve("simple")]

        assert names == ["kasm", "elasticsearch", "cassandra", "velociraptor", "portainer"]

    def test_custom_mode_orders_dependencies_first(self):
        services = default_registry().resolve("custom", ["thehive", "cortex", "cassandra", "elasticsearch", "thehive"])

        assert [service.name for service in services] == ["cassandra", "elasticsearch", "thehive", "cortex"]

    def test_custom_mode_unknown_service(self):
        with pytest.raises(ValidationError) as exc_info:
            default_registry().resolve("custom", ["elasticsearch", "misp"])

        assert "Unknown service: misp" in str(exc_info.value)

    def test_custom_mode_requires_services(self):
        with pytest.raises(ValidationError):
            default_registry().resolve("custom", [])

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            default_registry().resolve("everything")


class TestRegistry:
    def test_duplicate_definition(self):
        with pytest.raises(ValidationError):
            ServiceRegistry([StubService("a"), StubService("a")])

    def test_circular_dependency(self):
        with pytest.raises(ValidationError):
            order_by_dependencies([StubService("a", dependencies=["b"]), StubService("b", dependencies=["a"])])

    def test_contains_and_len(self):
        registry = default_registry()

        assert "thehive" in registry
        assert "grr" not in registry
        assert len(registry) == 9


class TestPortAllocation:
    """Test host port clash detection."""

    def test_bundle_has_no_clashes(self):
        validate_port_allocation(default_registry())

    def test_clash_is_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_port_allocation([StubService("a", ports=[tcp(8000)]), StubService("b", ports=[tcp(8000)])])

        assert "8000 (a and b)" in str(exc_info.value)
