"""
Unit tests for the pre-deployment checks.
"""

from unittest.mock import Mock

import pytest

from btpi_react.api.containers import PortMapping
from btpi_react.core.errors import DeploymentError
from btpi_react.integrations.docker import DockerCli
from btpi_react.orchestrator import preflight as preflight_module
from btpi_react.orchestrator.preflight import PreflightChecker, PreflightReport, SystemInfo, read_os_name

from conftest import StubService, tcp


def system(**overrides):
    values = dict(
        os_name="Ubuntu 22.04.4 LTS",
        kernel="6.5.0",
        cpu_count=8,
        memory_gb=32.0,
        disk_free_gb=250.0,
        is_root=True,
    )
    values.update(overrides)
    return SystemInfo(**values)


@pytest.fixture
def docker(monkeypatch):
    monkeypatch.setattr(preflight_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    cli = Mock(spec=DockerCli)
    cli.binary = "docker"
    cli.compose_version.return_value = "2.24.0"
    return cli


def make_checker(ctx, docker, info=None, online=True, busy=()):
    return PreflightChecker(
        ctx,
        docker=docker,
        system_info=lambda root: info or system(),
        connectivity=lambda: online,
        port_check=lambda mapping: mapping.host in busy,
    )


class TestSystemRequirements:
    """Test resource, privilege and tooling checks."""

    def test_healthy_host(self, ctx, docker):
        report = PreflightReport()

        make_checker(ctx, docker).check_system_requirements(report)

        assert report.ok
        assert report.warnings == []
        assert report.system.cpu_count == 8

    def test_small_host_only_warns(self, ctx, docker):
        report = PreflightReport()

        make_checker(ctx, docker, info=system(memory_gb=8.0, cpu_count=2, os_name="Fedora 40")).check_system_requirements(report)

        assert report.ok
        assert len(report.warnings) == 3

    def test_hard_requirements(self, ctx, docker):
        docker.compose_version.return_value = None
        report = PreflightReport()

        make_checker(ctx, docker, info=system(is_root=False, disk_free_gb=40.0), online=False).check_system_requirements(report)

        assert not report.ok
        assert any("root" in error for error in report.errors)
        assert any("disk space" in error for error in report.errors)
        assert any("Compose" in error for error in report.errors)
        assert any("internet" in error for error in report.errors)

    def test_missing_docker(self, ctx, docker, monkeypatch):
        monkeypatch.setattr(preflight_module.shutil, "which", lambda name: None)
        report = PreflightReport()

        make_checker(ctx, docker).check_system_requirements(report)

        assert report.errors == ["Docker is not installed"]
        docker.compose_version.assert_not_called()


class TestPortConflicts:
    def test_free_ports(self, ctx, docker):
        report = PreflightReport()

        make_checker(ctx, docker).check_port_conflicts([StubService("svc", ports=[tcp(9200)])], report)

        assert report.port_conflicts == []
        assert report.resolved_ports == []

    def test_port_owned_by_healthy_service_is_resolved(self, ctx, runtime, docker):
        runtime.add("elasticsearch")
        service = StubService("elasticsearch", ports=[tcp(9200), tcp(9300)])
        report = PreflightReport()

        make_checker(ctx, docker, busy={9200, 9300}).check_port_conflicts([service], report)

        assert report.port_conflicts == []
        assert report.resolved_ports == ["9200/tcp (elasticsearch)", "9300/tcp (elasticsearch)"]
        assert service.health_calls == 1

    def test_port_used_by_something_else(self, ctx, docker):
        service = StubService("velociraptor", ports=[PortMapping(8000, 8000, "udp")])

        with pytest.raises(DeploymentError) as exc_info:
            make_checker(ctx, docker, busy={8000}).run([service])

        assert "8000/udp (velociraptor)" in str(exc_info.value)

    def test_run_returns_report(self, ctx, docker):
        report = make_checker(ctx, docker).run([StubService("svc", ports=[tcp(9000)])])

        assert report.ok
        assert report.system.os_name.startswith("Ubuntu")


def test_read_os_name(tmp_path):
    os_release = tmp_path / "os-release"
    os_release.write_text('NAME="Ubuntu"\nPRETTY_NAME="Ubuntu 22.04.4 LTS"\n')

    assert read_os_name(os_release) == "Ubuntu 22.04.4 LTS"
