"""
Unit tests for Docker network setup and cleanup.
"""

import pytest

from btpi_react.core.errors import DeploymentError
from btpi_react.orchestrator.networks import cleanup_networks, network_specs, setup_networks


class TestSetupNetworks:
    def test_creates_missing_networks(self, config, runtime):
        runtime.networks.append("btpi-network")

        created = setup_networks(runtime, config.networks)

        assert created == ["btpi-core-network", "btpi-wazuh-network", "btpi-infra-network", "btpi-proxy-network"]
        assert len(runtime.networks) == 5

    def test_idempotent(self, config, runtime):
        setup_networks(runtime, config.networks)

        assert setup_networks(runtime, config.networks) == []

    def test_missing_required_network(self, config, runtime):
        runtime.fail_network_create.append("btpi-wazuh-network")

        with pytest.raises(DeploymentError) as exc_info:
            setup_networks(runtime, config.networks)

        assert "btpi-wazuh-network" in str(exc_info.value)

    def test_optional_network_failure_is_tolerated(self, config, runtime):
        runtime.fail_network_create.append("btpi-proxy-network")

        created = setup_networks(runtime, config.networks)

        assert "btpi-proxy-network" not in created


class TestCleanupNetworks:
    def test_disconnects_then_removes(self, config, runtime):
        runtime.networks.extend(spec.name for spec in network_specs(config.networks))
        runtime.members["btpi-core-network"] = ["elasticsearch"]

        removed = cleanup_networks(runtime, config.networks)

        assert len(removed) == 5
        assert runtime.networks == []
        assert ("disconnect", "btpi-core-network", "elasticsearch") in runtime.calls
