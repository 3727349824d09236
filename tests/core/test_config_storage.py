"""
Unit tests for the .env secrets file storage.
"""

import os
import stat

import pytest

from btpi_react.core.config_storage import load_env_file, save_env_file, update_env_value
from btpi_react.core.errors import ConfigError


class TestEnvFile:
    """Test reading and writing the .env file."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test a missing file loads as an empty mapping."""
        assert load_env_file(tmp_path / ".env") == {}

    def test_save_and_load(self, tmp_path):
        """Test sections are written with headers and read back."""
        env_file = tmp_path / "config" / ".env"
        save_env_file(
            [("Passwords", {"ELASTIC_PASSWORD": "abc+/=", "EMPTY": ""}), ("Domain", {"DOMAIN_NAME": "btpi.local"})],
            env_file,
            header=["Generated for tests"],
        )

        text = env_file.read_text()
        assert text.startswith("# Generated for tests")
        assert "# Passwords" in text
        assert stat.S_IMODE(os.stat(env_file).st_mode) == 0o600
        assert load_env_file(env_file) == {
            "ELASTIC_PASSWORD": "abc+/=",
            "EMPTY": "",
            "DOMAIN_NAME": "btpi.local",
        }

    def test_load_handles_quotes_comments_and_export(self, tmp_path):
        """Test quoting, comments and export prefixes."""
        env_file = tmp_path / ".env"
        env_file.write_text('# comment\n\nexport A=1\nB="two words"\nC=\'x\'\nnot a pair\n')

        assert load_env_file(env_file) == {"A": "1", "B": "two words", "C": "x"}

    def test_update_existing_key(self, tmp_path):
        """Test a single key is replaced and everything else kept."""
        env_file = tmp_path / ".env"
        env_file.write_text("# Secrets\nA=1\nCORTEX_API_KEY=\nB=2\n")

        update_env_value(env_file, "CORTEX_API_KEY", "new-key")

        assert env_file.read_text() == "# Secrets\nA=1\nCORTEX_API_KEY=new-key\nB=2\n"

    def test_update_appends_missing_key(self, tmp_path):
        """Test a missing key is appended."""
        env_file = tmp_path / ".env"
        env_file.write_text("A=1\n")

        update_env_value(env_file, "B", "2")

        assert load_env_file(env_file) == {"A": "1", "B": "2"}

    def test_update_requires_file(self, tmp_path):
        """Test updating a missing file raises ConfigError."""
        with pytest.raises(ConfigError):
            update_env_value(tmp_path / ".env", "A", "1")
