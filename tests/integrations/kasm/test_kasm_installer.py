"""
Unit tests for the native Kasm installer.
"""

import tarfile
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import requests

from btpi_react.api.containers import ContainerState
from btpi_react.core.errors import IntegrationError
from btpi_react.integrations.kasm import KasmInstaller, KasmRelease, KasmStatus
from btpi_react.integrations.kasm.kasm_installer import KASM_CORE_CONTAINERS

from conftest import FakeRuntime


def make_installer(tmp_path, runtime, port_open=False, sleeps=None):
    return KasmInstaller(
        runtime,
        install_root=tmp_path / "kasm",
        work_dir=tmp_path / "work",
        retry_delay_seconds=5,
        sleep=(sleeps.append if sleeps is not None else lambda seconds: None),
        port_check=lambda port: port_open,
    )


def write_config(installer):
    installer.config_file.parent.mkdir(parents=True, exist_ok=True)
    installer.config_file.write_text("api: {}\n")


class TestKasmRelease:
    def test_archives_and_urls(self):
        release = KasmRelease(version="1.2.3.abc")

        assert release.main_archive == "kasm_release_1.2.3.abc.tar.gz"
        assert len(release.archives) == 4
        assert release.url(release.main_archive).endswith("/kasm_release_1.2.3.abc.tar.gz")


class TestKasmStatus:
    """Test detection of existing installations."""

    def test_absent_without_config(self, tmp_path):
        assert make_installer(tmp_path, FakeRuntime()).status() == KasmStatus.ABSENT

    def test_working(self, tmp_path):
        runtime = FakeRuntime()
        for name in KASM_CORE_CONTAINERS:
            runtime.add(name)
        runtime.containers["kasm_proxy"].started_at = datetime.now(timezone.utc) - timedelta(hours=1)
        installer = make_installer(tmp_path, runtime, port_open=True)
        write_config(installer)

        assert installer.status() == KasmStatus.WORKING

    def test_recently_started_is_broken(self, tmp_path):
        runtime = FakeRuntime()
        for name in KASM_CORE_CONTAINERS:
            runtime.add(name)
        runtime.containers["kasm_proxy"].started_at = datetime.now(timezone.utc) - timedelta(seconds=30)
        installer = make_installer(tmp_path, runtime, port_open=True)
        write_config(installer)

        assert installer.status() == KasmStatus.BROKEN

    def test_partial_containers_is_broken(self, tmp_path):
        runtime = FakeRuntime()
        runtime.add("kasm_api")
        installer = make_installer(tmp_path, runtime)
        write_config(installer)

        assert installer.status() == KasmStatus.BROKEN


class TestKasmInstall:
    """Test install decisions and downloads."""

    def test_skips_when_port_open(self, tmp_path):
        installer = make_installer(tmp_path, FakeRuntime(), port_open=True)

        assert installer.install() is False

    def test_cleanup_removes_containers_and_program_files(self, tmp_path):
        runtime = FakeRuntime()
        runtime.add("kasm_api")
        runtime.add("kasm_db", ContainerState.EXITED)
        runtime.networks.append("kasm_default_network")
        installer = make_installer(tmp_path, runtime)
        write_config(installer)

        installer.cleanup()

        assert runtime.containers == {}
        assert runtime.networks == []
        assert not (installer.install_root / "current").exists()

    @patch("btpi_react.integrations.kasm.kasm_installer.requests.get")
    def test_download_retries_then_fails(self, mock_get, tmp_path):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        sleeps = []
        installer = make_installer(tmp_path, FakeRuntime(), sleeps=sleeps)
        installer.work_dir.mkdir(parents=True)

        with pytest.raises(IntegrationError):
            installer.download("https://example.invalid/a.tar.gz", installer.work_dir / "a.tar.gz")

        assert mock_get.call_count == 3
        assert sleeps == [5, 5]
        assert not (installer.work_dir / "a.tar.gz").exists()

    @patch("btpi_react.integrations.kasm.kasm_installer.run_command")
    def test_failed_installer_removes_downloads(self, mock_run, tmp_path):
        mock_run.side_effect = IntegrationError("install.sh exited with 1")
        installer = make_installer(tmp_path, FakeRuntime())
        script = tmp_path / "install.sh"
        script.write_text("#!/bin/bash\n")

        def fake_download(url, destination):
            if destination.name == installer.release.main_archive:
                with tarfile.open(destination, "w:gz") as tar:
                    tar.add(script, arcname="kasm_release/install.sh")
            else:
                destination.write_bytes(b"images")

        with patch.object(installer, "download", side_effect=fake_download):
            with pytest.raises(IntegrationError):
                installer.install()

        mock_run.assert_called_once()
        assert list(installer.work_dir.iterdir()) == []
