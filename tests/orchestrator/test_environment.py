"""
Unit tests for .env generation and validation.
"""

import base64
import os
import stat

from btpi_react.core.config_storage import load_env_file
from btpi_react.orchestrator.environment import (
    generate_environment,
    random_base64,
    random_hex,
    validate_environment,
)


class TestRandomSecrets:
    def test_encodings(self):
        assert len(base64.b64decode(random_base64(32))) == 32
        assert len(random_hex(32)) == 64
        assert random_hex(8) != random_hex(8)


class TestGenerateEnvironment:
    """Test the secrets file lifecycle."""

    def test_creates_file_once(self, config):
        env = generate_environment(config, deployment_id="dep-1", deployment_date="20240101_000000")

        assert env["DEPLOYMENT_ID"] == "dep-1"
        assert env["SERVER_IP"] == "10.0.0.5"
        assert env["BTPI_CORE_NETWORK"] == "btpi-core-network"
        assert env["CORTEX_API_KEY"] == ""
        assert env["ELASTIC_PASSWORD"]
        assert len(env["WAZUH_CLUSTER_KEY"]) == 64
        assert stat.S_IMODE(os.stat(config.paths.env_file).st_mode) == 0o600

        again = generate_environment(config, deployment_id="dep-2")
        assert again["DEPLOYMENT_ID"] == "dep-1"
        assert again["ELASTIC_PASSWORD"] == env["ELASTIC_PASSWORD"]

    def test_file_has_section_headers(self, config):
        generate_environment(config, deployment_id="dep-1")
        text = config.paths.env_file.read_text()

        assert "# Database Passwords" in text
        assert "# Network Configuration" in text


class TestValidateEnvironment:
    def test_fills_missing_keys(self, config):
        env = {"ELASTIC_PASSWORD": "x"}

        missing = validate_environment(env, config)

        assert set(missing) == {"BTPI_NETWORK", "SERVER_IP", "BTPI_VERSION"}
        assert env["BTPI_NETWORK"] == "btpi-network"
        assert env["SERVER_IP"] == "10.0.0.5"
        assert env["BTPI_VERSION"] == config.version

    def test_complete_environment(self, config):
        env = generate_environment(config)

        assert validate_environment(env, config) == []
        assert load_env_file(config.paths.env_file) == generate_environment(config)
