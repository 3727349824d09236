"""
Unit tests for the docker CLI runtime.
"""

from datetime import timezone
from unittest.mock import Mock

import pytest

from btpi_react.api.containers import (
    ContainerSpec,
    ContainerState,
    HealthCmd,
    NetworkSpec,
    PortMapping,
    VolumeMount,
)
from btpi_react.core.errors import IntegrationError
from btpi_react.integrations.docker import DockerCli, DockerContainerRuntime
from btpi_react.integrations.docker.docker_client import parse_docker_timestamp
from btpi_react.integrations.process import CommandResult


def result(stdout="", returncode=0, stderr=""):
    return CommandResult(args=["docker"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def cli():
    return Mock(spec=DockerCli)


class TestParseDockerTimestamp:
    """Test docker timestamp parsing."""

    def test_nanoseconds_and_z_suffix(self):
        parsed = parse_docker_timestamp("2024-05-01T10:20:30.123456789Z")

        assert parsed.year == 2024
        assert parsed.microsecond == 123456
        assert parsed.tzinfo == timezone.utc

    def test_zero_and_empty(self):
        assert parse_docker_timestamp("0001-01-01T00:00:00Z") is None
        assert parse_docker_timestamp("") is None

    def test_garbage(self):
        assert parse_docker_timestamp("yesterday") is None


class TestDockerContainerRuntime:
    """Test the runtime against a mocked DockerCli."""

    def test_inspect_running_container(self, cli):
        """Test status, start time and health are parsed."""
        cli.run.return_value = result("running|2024-05-01T10:20:30.5Z|healthy\n")
        runtime = DockerContainerRuntime(cli)

        info = runtime.inspect("elasticsearch")

        assert info.state == ContainerState.RUNNING
        assert info.is_running
        assert info.health == "healthy"
        assert info.started_at is not None
        assert cli.run.call_args[1]["check"] is False

    def test_inspect_missing_container(self, cli):
        """Test a failed inspect reports ABSENT."""
        cli.run.return_value = result("", returncode=1, stderr="Error: No such object")
        runtime = DockerContainerRuntime(cli)

        assert runtime.inspect("nope").state == ContainerState.ABSENT

    def test_inspect_without_healthcheck(self, cli):
        cli.run.return_value = result("exited|2024-05-01T10:20:30Z|")
        info = DockerContainerRuntime(cli).inspect("portainer")

        assert info.state == ContainerState.EXITED
        assert info.health is None

    def test_list_and_is_running(self, cli):
        cli.lines.return_value = ["elasticsearch", "cassandra"]
        runtime = DockerContainerRuntime(cli)

        assert runtime.is_running("cassandra")
        assert not runtime.is_running("thehive")
        cli.lines.assert_called_with(["ps", "--format", "{{.Names}}"])

        runtime.exists("cassandra")
        cli.lines.assert_called_with(["ps", "-a", "--format", "{{.Names}}"])

    def test_remove_tolerates_missing_container(self, cli):
        cli.run.return_value = result("", returncode=1, stderr="Error: No such container: x")

        DockerContainerRuntime(cli).remove("x")

        cli.run.assert_called_once_with(["rm", "-f", "x"], check=False)

    def test_remove_failure(self, cli):
        cli.run.return_value = result("", returncode=1, stderr="permission denied")

        with pytest.raises(IntegrationError):
            DockerContainerRuntime(cli).remove("x")

    def test_create_network_with_subnet(self, cli):
        cli.run.return_value = result("abc")
        DockerContainerRuntime(cli).create_network(NetworkSpec("btpi-core-network", "172.24.0.0/16"))

        cli.run.assert_called_once_with(
            ["network", "create", "--driver", "bridge", "--subnet=172.24.0.0/16", "btpi-core-network"]
        )

    def test_network_members(self, cli):
        cli.run.return_value = result("elasticsearch cassandra \n")

        assert DockerContainerRuntime(cli).network_members("btpi-core-network") == ["elasticsearch", "cassandra"]

    def test_exec(self, cli):
        cli.run.return_value = result("ok", returncode=0)

        exec_result = DockerContainerRuntime(cli).exec("cassandra", ["cqlsh", "-e", "DESC KEYSPACES"])

        assert exec_result.ok
        assert exec_result.output == "ok"
        cli.run.assert_called_once_with(["exec", "cassandra", "cqlsh", "-e", "DESC KEYSPACES"], check=False)


class TestContainerSpec:
    """Test docker run argument building."""

    def test_to_run_args(self):
        spec = ContainerSpec(
            name="wazuh-manager",
            image="wazuh/wazuh-manager:4.9.0",
            network="btpi-wazuh-network",
            ports=[PortMapping(1514, 1514, "udp"), PortMapping(55000, 55000)],
            env={"API_USERNAME": "wazuh"},
            volumes=[VolumeMount("/srv/ssl/root-ca.pem", "/etc/ssl/root-ca.pem", read_only=True)],
            ulimits={"memlock": "-1:-1"},
            healthcheck=HealthCmd(test="true", retries=3, start_period="60s"),
            command=["--verbose"],
        )

        args = spec.to_run_args()

        assert args[:6] == ["run", "-d", "--name", "wazuh-manager", "--restart", "unless-stopped"]
        assert ["--network", "btpi-wazuh-network"] == args[6:8]
        assert "1514:1514/udp" in args
        assert "55000:55000" in args
        assert "API_USERNAME=wazuh" in args
        assert "/srv/ssl/root-ca.pem:/etc/ssl/root-ca.pem:ro" in args
        assert "memlock=-1:-1" in args
        assert "--health-retries=3" in args
        assert "--health-start-period=60s" in args
        assert args[-2:] == ["wazuh/wazuh-manager:4.9.0", "--verbose"]
