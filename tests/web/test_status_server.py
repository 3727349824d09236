"""
Unit tests for the status web server.
"""

import pytest
from fastapi.testclient import TestClient

from btpi_react.core.config import load_config
from btpi_react.core.errors import ConfigError
from btpi_react.orchestrator.workflow import DeploymentWorkflow
from btpi_react.services.registry import ServiceRegistry
from btpi_react.web.status_server import create_app

from conftest import FakeRuntime, StubService, tcp


@pytest.fixture
def web_config(tmp_path):
    return load_config(
        {
            "BTPI_ROOT_DIR": str(tmp_path),
            "BTPI_MODE": "custom",
            "BTPI_SERVICES": "db",
            "BTPI_SERVER_IP": "10.0.0.5",
        }
    )


@pytest.fixture
def fake_runtime():
    runtime = FakeRuntime()
    runtime.add("db")
    return runtime


@pytest.fixture
def client(web_config, fake_runtime):
    registry = ServiceRegistry([StubService("db", ports=[tcp(9200)]), StubService("app")])

    def factory(config):
        return DeploymentWorkflow(config, runtime=fake_runtime, registry=registry, sleep=lambda seconds: None)

    return TestClient(create_app(web_config, workflow_factory=factory))


class TestStatusServer:
    """Test the status API endpoints."""

    def test_health(self, client, web_config):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": web_config.version}

    def test_services(self, client):
        response = client.get("/api/services")

        assert response.status_code == 200
        services = {item["name"]: item for item in response.json()}
        assert services["db"]["selected"] is True
        assert services["db"]["ports"] == ["9200:9200"]
        assert services["app"]["selected"] is False

    def test_status(self, client):
        response = client.get("/api/status")

        data = response.json()
        assert data["mode"] == "custom"
        assert data["healthy"] == 1
        assert data["total"] == 1
        assert data["services"][0]["container"] == "running"
        assert data["services"][0]["health"] == "healthy"

    def test_service_health(self, client):
        response = client.get("/api/services/app/health")

        assert response.status_code == 200
        assert response.json()["health"] == "not_running"

    def test_unknown_service(self, client):
        response = client.get("/api/services/nope/health")

        assert response.status_code == 404

    def test_smoke_tests(self, client, web_config):
        response = client.post("/api/smoke-tests")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == len(data["results"])
        assert any(result["name"] == "db connectivity" and result["outcome"] == "PASSED" for result in data["results"])
        assert data["report_path"].startswith(str(web_config.paths.logs_dir))

    def test_factory_error_is_500(self, web_config):
        def factory(config):
            raise ConfigError("broken .env")

        client = TestClient(create_app(web_config, workflow_factory=factory))

        response = client.get("/api/status")

        assert response.status_code == 500
        assert response.json()["detail"] == "broken .env"
