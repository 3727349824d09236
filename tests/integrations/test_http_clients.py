"""
Unit tests for the vendor HTTP clients.

``requests`` is patched at the shared HTTP layer; no test opens a socket.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from btpi_react.core.errors import IntegrationError
from btpi_react.integrations.cortex import CortexHttpClient
from btpi_react.integrations.elastic import ElasticHttpClient, is_security_exception
from btpi_react.integrations.http_common import HttpApiError, ServiceHttpClient
from btpi_react.integrations.thehive import TheHiveHttpClient
from btpi_react.integrations.velociraptor import VelociraptorHttpClient
from btpi_react.integrations.wazuh import WazuhHttpClient

REQUEST = "btpi_react.integrations.http_common.requests.request"


def response(status_code=200, json_body=None, text=None):
    mock_response = Mock()
    mock_response.status_code = status_code
    if json_body is not None:
        mock_response.json.return_value = json_body
        mock_response.text = text if text is not None else str(json_body)
    else:
        mock_response.json.side_effect = ValueError("not json")
        mock_response.text = text or ""
    mock_response.content = mock_response.text.encode()
    return mock_response


class TestServiceHttpClient:
    """Test the shared request plumbing."""

    def test_build_url(self):
        client = ServiceHttpClient(base_url="http://localhost:9200/")

        assert client.build_url("/_cluster/health") == "http://localhost:9200/_cluster/health"
        assert client.build_url("") == "http://localhost:9200/"

    @patch(REQUEST)
    def test_timeout_becomes_integration_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(IntegrationError) as exc_info:
            ServiceHttpClient(base_url="http://localhost:1").get("/")

        assert "timeout" in str(exc_info.value)

    @patch(REQUEST)
    def test_error_status_raises_http_api_error(self, mock_request):
        mock_request.return_value = response(503, text="unavailable")

        with pytest.raises(HttpApiError) as exc_info:
            ServiceHttpClient(base_url="http://localhost:1").get("/")

        assert exc_info.value.status_code == 503

    @patch(REQUEST)
    def test_empty_body(self, mock_request):
        mock_request.return_value = response(204, text="")

        assert ServiceHttpClient(base_url="http://localhost:1").post("/x") == {}

    @patch(REQUEST)
    def test_non_json_body(self, mock_request):
        mock_request.return_value = response(200, text="<html>")

        with pytest.raises(IntegrationError):
            ServiceHttpClient(base_url="http://localhost:1").get("/")

    @patch("btpi_react.integrations.http_common.requests.get")
    def test_is_reachable(self, mock_get):
        mock_get.return_value = response(401, text="nope")
        assert ServiceHttpClient(base_url="https://localhost:8889").is_reachable()

        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        assert not ServiceHttpClient(base_url="https://localhost:8889").is_reachable()


class TestElasticHttpClient:
    """Test the Elasticsearch client."""

    @patch(REQUEST)
    def test_cluster_status_uses_basic_auth(self, mock_request):
        mock_request.return_value = response(200, {"status": "yellow"})
        client = ElasticHttpClient(base_url="http://localhost:9200", username="elastic", password="pw")

        assert client.cluster_status() == "yellow"
        kwargs = mock_request.call_args[1]
        assert kwargs["url"] == "http://localhost:9200/_cluster/health"
        assert kwargs["auth"] == ("elastic", "pw")

    @patch(REQUEST)
    def test_security_exception(self, mock_request):
        body = {"error": {"type": "security_exception", "reason": "missing authentication"}, "status": 401}
        mock_request.return_value = response(401, body, text='{"error":{"type":"security_exception"}}')

        with pytest.raises(HttpApiError) as exc_info:
            ElasticHttpClient(base_url="http://localhost:9200").cluster_status()

        assert is_security_exception(exc_info.value)
        assert "security_exception: missing authentication" in str(exc_info.value)


class TestWazuhHttpClient:
    """Test the Wazuh API client."""

    @patch(REQUEST)
    def test_authenticate(self, mock_request):
        mock_request.return_value = response(200, {"data": {"token": "jwt-token"}, "error": 0})
        client = WazuhHttpClient(base_url="https://localhost:55000", password="secret")

        assert client.authenticate() == "jwt-token"
        kwargs = mock_request.call_args[1]
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "https://localhost:55000/security/user/authenticate"
        assert kwargs["auth"] == ("wazuh", "secret")
        assert kwargs["verify"] is False

    def test_authenticate_without_password(self):
        with pytest.raises(IntegrationError):
            WazuhHttpClient(base_url="https://localhost:55000").authenticate()

    @patch(REQUEST)
    def test_authenticate_without_token(self, mock_request):
        mock_request.return_value = response(200, {"data": {}})

        with pytest.raises(IntegrationError):
            WazuhHttpClient(base_url="https://localhost:55000", password="secret").authenticate()


class TestVelociraptorHttpClient:
    @patch(REQUEST)
    def test_get_version(self, mock_request):
        mock_request.return_value = response(200, {"version": "0.74.1"})

        assert VelociraptorHttpClient(base_url="https://localhost:8889").get_version() == "0.74.1"

    @patch(REQUEST)
    def test_get_version_missing(self, mock_request):
        mock_request.return_value = response(200, {})

        with pytest.raises(IntegrationError):
            VelociraptorHttpClient(base_url="https://localhost:8889").get_version()


class TestTheHiveHttpClient:
    @patch(REQUEST)
    def test_status_with_api_key(self, mock_request):
        mock_request.return_value = response(200, {"versions": {"TheHive": "5.4"}})

        TheHiveHttpClient(base_url="http://localhost:9000", api_key="k").status()

        kwargs = mock_request.call_args[1]
        assert kwargs["url"] == "http://localhost:9000/api/status"
        assert kwargs["headers"]["Authorization"] == "Bearer k"


class TestCortexHttpClient:
    """Test the Cortex provisioning calls."""

    @patch(REQUEST)
    def test_login_sets_basic_auth(self, mock_request):
        mock_request.return_value = response(200, {"id": "admin"})
        client = CortexHttpClient(base_url="http://localhost:9001")

        client.login("admin", "pw")

        assert mock_request.call_args[1]["auth"] == ("admin", "pw")
        assert mock_request.call_args[1]["url"] == "http://localhost:9001/api/user/current"

    @patch(REQUEST)
    def test_login_rejected(self, mock_request):
        mock_request.return_value = response(401, text="Authentication failure")
        client = CortexHttpClient(base_url="http://localhost:9001")

        with pytest.raises(IntegrationError):
            client.login("admin", "bad")

        assert client._auth() is None

    @patch(REQUEST)
    def test_create_organisation_conflict(self, mock_request):
        mock_request.return_value = response(400, text="already exists")

        assert CortexHttpClient(base_url="http://localhost:9001").create_organisation("btpi-react", "d") is False

    @patch(REQUEST)
    def test_create_user_payload(self, mock_request):
        mock_request.return_value = response(201, {"id": "thehive"})

        created = CortexHttpClient(base_url="http://localhost:9001").create_user(
            "thehive", "TheHive", "btpi-react", ["read", "analyze"]
        )

        assert created is True
        assert mock_request.call_args[1]["json"] == {
            "login": "thehive",
            "name": "TheHive",
            "organization": "btpi-react",
            "roles": ["read", "analyze"],
        }

    @patch(REQUEST)
    def test_renew_api_key_plain_text(self, mock_request):
        mock_request.return_value = response(200, text="abcdef123456")

        key = CortexHttpClient(base_url="http://localhost:9001").renew_api_key("thehive")

        assert key == "abcdef123456"
        assert mock_request.call_args[1]["url"] == "http://localhost:9001/api/user/thehive/key/renew"

    @patch(REQUEST)
    def test_bearer_key_disables_basic_auth(self, mock_request):
        mock_request.return_value = response(200, {})
        client = CortexHttpClient(base_url="http://localhost:9001", username="a", password="b", api_key="k")

        client.status()

        assert mock_request.call_args[1]["auth"] is None
        assert mock_request.call_args[1]["headers"]["Authorization"] == "Bearer k"
