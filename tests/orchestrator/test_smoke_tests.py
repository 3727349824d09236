"""
Unit tests for the post-deployment smoke tests.
"""

from datetime import datetime
from unittest.mock import Mock

from btpi_react.api.containers import ExecResult
from btpi_react.core.errors import IntegrationError
from btpi_react.orchestrator.smoke_tests import (
    CheckOutcome,
    SmokeTestReport,
    SmokeTestResult,
    SmokeTestSuite,
    write_smoke_report,
)

from conftest import StubService, tcp


class ClientService(StubService):
    """Stub service that also hands out an API client."""

    def __init__(self, name, api, **kwargs):
        super().__init__(name, **kwargs)
        self.api = api

    def client(self, ctx):
        return self.api


def results_by_name(report):
    return {result.name: result for result in report.results}


class TestSmokeTestReport:
    def test_counts_and_rate(self):
        report = SmokeTestReport(
            results=[
                SmokeTestResult("a", CheckOutcome.PASSED),
                SmokeTestResult("b", CheckOutcome.PASSED),
                SmokeTestResult("c", CheckOutcome.PASSED),
                SmokeTestResult("d", CheckOutcome.FAILED),
                SmokeTestResult("e", CheckOutcome.SKIPPED),
            ]
        )

        assert (report.total, report.passed, report.failed, report.skipped) == (5, 3, 1, 1)
        assert report.success_rate == 75.0
        assert report.ok is False

    def test_empty_report_is_ok(self):
        report = SmokeTestReport()

        assert report.success_rate == 100.0
        assert report.ok

    def test_write(self, tmp_path):
        report = SmokeTestReport(
            results=[SmokeTestResult("port 80", CheckOutcome.SKIPPED, "not accessible", warning=True)],
            started_at=datetime(2024, 5, 6, 7, 8, 9),
        )

        path = write_smoke_report(report, tmp_path / "logs")

        assert path.name == "integration_test_report_20240506_070809.txt"
        text = path.read_text()
        assert "[SKIPPED] port 80 (warning): not accessible" in text
        assert text.rstrip().endswith("Overall: PASSED")


class TestSmokeTestSuite:
    """Test the individual checks against stubbed services."""

    def test_all_checks_pass(self, ctx, runtime, config):
        runtime.networks.extend([config.networks.core_network, config.networks.wazuh_network])
        runtime.add("svc")
        ctx.paths.data_dir.mkdir(parents=True)
        ctx.paths.logs_dir.mkdir(parents=True)

        report = SmokeTestSuite(ctx, [StubService("svc", ports=[tcp(9000)])], port_check=lambda port: True).run()

        results = results_by_name(report)
        assert report.ok
        assert results["svc connectivity"].outcome == CheckOutcome.PASSED
        assert results["svc container state"].outcome == CheckOutcome.PASSED
        assert results["data directory writable"].outcome == CheckOutcome.PASSED
        assert results["port 9000 (svc)"].outcome == CheckOutcome.PASSED
        assert results["Elasticsearch cluster health"].outcome == CheckOutcome.SKIPPED
        assert list(ctx.paths.data_dir.iterdir()) == []

    def test_failures_are_recorded_not_raised(self, ctx, runtime):
        report = SmokeTestSuite(ctx, [StubService("svc")], port_check=lambda port: False).run()

        results = results_by_name(report)
        assert results["svc connectivity"].outcome == CheckOutcome.FAILED
        assert results["svc container state"].detail == "absent"
        assert results["logs directory writable"].outcome == CheckOutcome.FAILED
        assert results["network btpi-core-network"].detail == "missing"
        assert report.ok is False

    def test_closed_port_only_warns(self, ctx):
        suite = SmokeTestSuite(ctx, [StubService("svc", ports=[tcp(9000)])], port_check=lambda port: False)

        suite.check_ports()
        report = suite._report

        assert report.results[0].outcome == CheckOutcome.SKIPPED
        assert report.results[0].warning
        assert report.ok

    def test_elasticsearch_yellow_passes_with_warning(self, ctx):
        api = Mock()
        api.cluster_status.return_value = "yellow"
        suite = SmokeTestSuite(ctx, [ClientService("elasticsearch", api)])

        suite.check_elasticsearch_health()

        result = suite._report.results[0]
        assert result.outcome == CheckOutcome.PASSED
        assert result.warning

    def test_elasticsearch_red_fails(self, ctx):
        api = Mock()
        api.cluster_status.return_value = "red"
        suite = SmokeTestSuite(ctx, [ClientService("elasticsearch", api)])

        suite.check_elasticsearch_health()

        assert suite._report.results[0].outcome == CheckOutcome.FAILED

    def test_wazuh_authentication_error(self, ctx):
        api = Mock()
        api.authenticate.side_effect = IntegrationError("401 Unauthorized")
        suite = SmokeTestSuite(ctx, [ClientService("wazuh-manager", api)])

        suite.check_wazuh_api()

        result = suite._report.results[0]
        assert result.outcome == CheckOutcome.FAILED
        assert "401" in result.detail

    def test_cassandra_keyspaces(self, ctx, runtime):
        runtime.exec_handler = lambda name, command: ExecResult(0, "system_auth  system")
        suite = SmokeTestSuite(ctx, [StubService("cassandra")])

        suite.check_cassandra_keyspaces()

        assert suite._report.results[0].outcome == CheckOutcome.PASSED
        assert runtime.calls == [("exec", "cassandra", ("cqlsh", "-e", "DESC KEYSPACES"))]
