"""
Native installer for Kasm Workspaces.

Kasm is not run as a single container: its release tarball ships an
``install.sh`` that creates its own set of ``kasm_*`` containers and the
``kasm_default_network``. This module detects the state of an existing
install, cleans up broken ones, downloads the release archives and runs
the installer.
"""

from __future__ import annotations

import shutil
import tarfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import requests

from ...api.containers import ContainerRuntime
from ...core.errors import IntegrationError
from ...core.logging import get_logger
from ..http_common import ServiceHttpClient
from ..ports import is_port_open
from ..process import run_command


logger = get_logger("btpi.integrations.kasm")

KASM_PORT = 8443

KASM_CORE_CONTAINERS = ("kasm_api", "kasm_manager", "kasm_agent", "kasm_proxy")
KASM_ALL_CONTAINERS = ("kasm_proxy", "kasm_agent", "kasm_manager", "kasm_api", "kasm_db", "kasm_redis")
KASM_NETWORKS = ("kasm_default_network",)

# kasm_proxy must have been up this long before an install counts as working
MIN_WORKING_UPTIME_SECONDS = 600


class KasmStatus(str, Enum):
    WORKING = "WORKING"
    BROKEN = "BROKEN"
    ABSENT = "ABSENT"


@dataclass
class KasmRelease:
    """
    Location and file names of a Kasm Workspaces release.
    """

    version: str = "1.17.0.7f020d"
    base_url: str = "https://kasm-static-content.s3.amazonaws.com"
    arch: str = "amd64"

    @property
    def main_archive(self) -> str:
        return f"kasm_release_{self.version}.tar.gz"

    @property
    def service_images(self) -> str:
        return f"kasm_release_service_images_{self.arch}_{self.version}.tar.gz"

    @property
    def workspace_images(self) -> str:
        return f"kasm_release_workspace_images_{self.arch}_{self.version}.tar.gz"

    @property
    def plugin_images(self) -> str:
        return f"kasm_release_plugin_images_{self.arch}_{self.version}.tar.gz"

    @property
    def archives(self) -> List[str]:
        return [self.main_archive, self.service_images, self.workspace_images, self.plugin_images]

    def url(self, archive: str) -> str:
        return f"{self.base_url.rstrip('/')}/{archive}"


class KasmInstaller:
    """
    Detects, repairs and installs a native Kasm Workspaces deployment.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        release: Optional[KasmRelease] = None,
        install_root: Path = Path("/opt/kasm"),
        work_dir: Path = Path("/tmp"),
        download_attempts: int = 3,
        retry_delay_seconds: int = 10,
        sleep: Callable[[float], None] = time.sleep,
        port_check: Callable[[int], bool] = is_port_open,
    ) -> None:
        self._runtime = runtime
        self.release = release or KasmRelease()
        self.install_root = install_root
        self.work_dir = work_dir
        self.download_attempts = download_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep
        self._port_check = port_check

    @property
    def config_file(self) -> Path:
        return self.install_root / "current" / "conf" / "app" / "api.app.config.yaml"

    # Status

    def status(self) -> KasmStatus:
        """
        WORKING: config present, all core containers running, ``kasm_proxy``
        up for more than ten minutes and port 8443 open.
        BROKEN: config present and some containers running, but not WORKING.
        ABSENT: otherwise.
        """

        if not self.config_file.exists():
            return KasmStatus.ABSENT

        running = set(self._runtime.list_containers())
        running_core = [name for name in KASM_CORE_CONTAINERS if name in running]

        if len(running_core) == len(KASM_CORE_CONTAINERS):
            proxy = self._runtime.inspect("kasm_proxy")
            if proxy.started_at is not None:
                uptime = (datetime.now(timezone.utc) - proxy.started_at).total_seconds()
                if uptime > MIN_WORKING_UPTIME_SECONDS and self._port_check(KASM_PORT):
                    return KasmStatus.WORKING

        if running_core:
            return KasmStatus.BROKEN
        return KasmStatus.ABSENT

    def is_serving(self, timeout_seconds: int = 10) -> bool:
        if not self._port_check(KASM_PORT):
            return False
        client = ServiceHttpClient(base_url=f"https://localhost:{KASM_PORT}", timeout_seconds=timeout_seconds)
        return client.is_reachable("/")

    # Cleanup

    def cleanup(self) -> None:
        """
        Remove the containers, network and program files of a broken install.
        Data under the install root is preserved.
        """

        logger.info("Cleaning up broken Kasm installation")
        existing = set(self._runtime.list_containers(all_containers=True))
        for name in KASM_ALL_CONTAINERS:
            if name in existing:
                logger.info("Stopping and removing container: %s", name)
                self._runtime.remove(name, force=True)

        networks = set(self._runtime.list_networks())
        for network in KASM_NETWORKS:
            if network in networks:
                logger.info("Removing network: %s", network)
                try:
                    self._runtime.remove_network(network)
                except IntegrationError as exc:
                    logger.warning("Could not remove network %s: %s", network, exc)

        for sub in ("current", "bin", "conf"):
            shutil.rmtree(self.install_root / sub, ignore_errors=True)

        logger.info("Kasm cleanup completed")

    # Installation

    def download(self, url: str, destination: Path) -> None:
        """
        Download ``url`` with retries. An empty file counts as a failure.

        Raises:
            IntegrationError: After the last failed attempt.
        """

        for attempt in range(1, self.download_attempts + 1):
            logger.info("Download attempt %s/%s for %s", attempt, self.download_attempts, destination.name)
            try:
                with requests.get(url, stream=True, timeout=(30, 300)) as response:
                    response.raise_for_status()
                    with destination.open("wb") as handle:
                        for chunk in response.iter_content(chunk_size=1024 * 1024):
                            handle.write(chunk)
                if destination.exists() and destination.stat().st_size > 0:
                    logger.info("Downloaded %s", destination.name)
                    return
                logger.warning("Downloaded file %s is empty", destination.name)
            except (requests.exceptions.RequestException, OSError) as exc:
                logger.warning("Download failed for %s: %s", destination.name, exc)

            destination.unlink(missing_ok=True)
            if attempt < self.download_attempts:
                logger.info("Waiting %s seconds before retry", self.retry_delay_seconds)
                self._sleep(self.retry_delay_seconds)

        raise IntegrationError(
            f"Failed to download {destination.name} after {self.download_attempts} attempts"
        )

    def install(self) -> bool:
        """
        Install Kasm unless it is already serving on port 8443.

        Returns:
            False if the install was skipped, True if the installer ran.

        Raises:
            IntegrationError: If a download, the extraction or the installer fails.
        """

        if self._port_check(KASM_PORT):
            logger.info("Kasm is already running on port %s, skipping installation", KASM_PORT)
            return False

        if self.status() == KasmStatus.BROKEN:
            self.cleanup()

        logger.info("Starting Kasm %s installation", self.release.version)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        try:
            self._download_and_run()
        finally:
            self._remove_downloads()
        logger.info("Kasm installation completed")
        return True

    def _download_and_run(self) -> None:
        for archive in self.release.archives:
            self.download(self.release.url(archive), self.work_dir / archive)

        try:
            with tarfile.open(self.work_dir / self.release.main_archive) as tar:
                tar.extractall(self.work_dir)
        except (tarfile.TarError, OSError) as exc:
            raise IntegrationError(f"Failed to extract {self.release.main_archive}: {exc}") from exc

        logger.info("Running Kasm installer, this may take several minutes")
        run_command(
            [
                "bash",
                str(self.work_dir / "kasm_release" / "install.sh"),
                "--accept-eula",
                "--offline-workspaces", str(self.work_dir / self.release.workspace_images),
                "--offline-service", str(self.work_dir / self.release.service_images),
                "--offline-network-plugin", str(self.work_dir / self.release.plugin_images),
            ],
            timeout=None,
        )

    def _remove_downloads(self) -> None:
        for archive in self.release.archives:
            (self.work_dir / archive).unlink(missing_ok=True)
        shutil.rmtree(self.work_dir / "kasm_release", ignore_errors=True)
