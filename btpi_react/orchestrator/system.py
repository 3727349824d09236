"""
Host tuning for a full deployment: file-descriptor limits, kernel
parameters for Elasticsearch/Wazuh, and Docker daemon defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.errors import DeploymentError
from ..core.logging import get_logger
from ..integrations.process import CommandResult, run_command


logger = get_logger("btpi.orchestrator.system")

BLOCK_BEGIN = "# BTPI-REACT optimizations"
BLOCK_END = "# End BTPI-REACT optimizations"

LIMITS_LINES = [
    "* soft nofile 65536",
    "* hard nofile 65536",
    "* soft nproc 32768",
    "* hard nproc 32768",
    "root soft nofile 65536",
    "root hard nofile 65536",
]

SYSCTL_SETTINGS = {
    "vm.max_map_count": "262144",
    "vm.swappiness": "1",
    "net.core.somaxconn": "65535",
    "net.ipv4.tcp_max_syn_backlog": "65535",
    "fs.file-max": "2097152",
    "net.ipv4.ip_forward": "1",
}

DAEMON_DEFAULTS: Dict[str, Any] = {
    "storage-driver": "overlay2",
    "log-driver": "json-file",
    "log-opts": {"max-size": "10m", "max-file": "3"},
    "default-ulimits": {"nofile": {"Name": "nofile", "Hard": 65536, "Soft": 65536}},
}

DEPRECATED_STORAGE_OPTS = ("overlay2.override_kernel_check",)

Runner = Callable[[Sequence[str]], CommandResult]


def _default_runner(args: Sequence[str]) -> CommandResult:
    return run_command(args, check=False, timeout=120)


def replace_marked_block(text: str, lines: Sequence[str], begin: str = BLOCK_BEGIN, end: str = BLOCK_END) -> str:
    """
    Put ``lines`` between ``begin``/``end`` markers in ``text``.

    An existing block is replaced in place; otherwise the block is appended.
    """

    block = [begin, *lines, end]
    current = text.splitlines()

    if begin in current:
        start = current.index(begin)
        try:
            stop = current.index(end, start) + 1
        except ValueError:
            stop = len(current)
        updated = current[:start] + block + current[stop:]
    else:
        updated = current + ([""] if current and current[-1].strip() else []) + block

    return "\n".join(updated) + "\n"


def _update_marked_file(path: Path, lines: Sequence[str]) -> None:
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(replace_marked_block(existing, lines), encoding="utf-8")


def merge_daemon_config(current: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overlay the bundle's daemon defaults on an existing daemon.json.
    """

    merged = dict(current)
    for key, value in DAEMON_DEFAULTS.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value

    storage_opts = [opt for opt in merged.get("storage-opts", []) if not _is_deprecated_storage_opt(opt)]
    if storage_opts:
        merged["storage-opts"] = storage_opts
    else:
        merged.pop("storage-opts", None)
    return merged


def _is_deprecated_storage_opt(option: str) -> bool:
    return any(option.startswith(name) for name in DEPRECATED_STORAGE_OPTS)


def _read_daemon_json(path: Path) -> Dict[str, Any]:
    if not path.exists() or not path.read_text(encoding="utf-8").strip():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DeploymentError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise DeploymentError(f"{path} must contain a JSON object")
    return data


@dataclass
class DaemonConfigCheck:
    valid: bool
    deprecated: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_daemon_config(path: Path = Path("/etc/docker/daemon.json")) -> DaemonConfigCheck:
    """
    Check daemon.json syntax and look for options that break recent
    Docker releases.
    """

    if not path.exists():
        logger.info("No Docker daemon configuration at %s", path)
        return DaemonConfigCheck(valid=True)

    try:
        data = _read_daemon_json(path)
    except DeploymentError as exc:
        logger.error("%s", exc)
        return DaemonConfigCheck(valid=False)

    check = DaemonConfigCheck(valid=True)
    check.deprecated = [opt for opt in data.get("storage-opts", []) if _is_deprecated_storage_opt(opt)]
    for option in check.deprecated:
        logger.error("Deprecated Docker storage option found: %s", option)
    if "userland-proxy-path" in data:
        check.warnings.append("userland-proxy-path is set; verify the binary exists")
        logger.warning("Custom userland-proxy-path configured: %s", data["userland-proxy-path"])
    return check


def fix_deprecated_options(path: Path = Path("/etc/docker/daemon.json")) -> bool:
    """
    Strip deprecated storage options from daemon.json.

    Returns:
        True if the file was rewritten.
    """

    data = _read_daemon_json(path)
    storage_opts = data.get("storage-opts", [])
    kept = [opt for opt in storage_opts if not _is_deprecated_storage_opt(opt)]
    if len(kept) == len(storage_opts):
        return False

    if kept:
        data["storage-opts"] = kept
    else:
        data.pop("storage-opts", None)

    backup = path.with_name(path.name + ".bak")
    backup.write_text(path.read_text(encoding="utf-8"), encoding="utf-8")
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    logger.info("Removed deprecated Docker options from %s (backup at %s)", path, backup)
    return True


class SystemOptimizer:
    """
    Applies the host tuning. File locations and the command runner are
    injectable so the logic can run against a scratch directory.
    """

    def __init__(
        self,
        limits_file: Path = Path("/etc/security/limits.conf"),
        sysctl_file: Path = Path("/etc/sysctl.conf"),
        daemon_file: Path = Path("/etc/docker/daemon.json"),
        runner: Runner = _default_runner,
    ) -> None:
        self.limits_file = limits_file
        self.sysctl_file = sysctl_file
        self.daemon_file = daemon_file
        self._run = runner

    def update_limits(self) -> None:
        _update_marked_file(self.limits_file, LIMITS_LINES)

    def update_sysctl(self) -> None:
        _update_marked_file(self.sysctl_file, [f"{key}={value}" for key, value in SYSCTL_SETTINGS.items()])

    def update_daemon_config(self) -> None:
        merged = merge_daemon_config(_read_daemon_json(self.daemon_file))
        self.daemon_file.parent.mkdir(parents=True, exist_ok=True)
        self.daemon_file.write_text(json.dumps(merged, indent=2) + "\n", encoding="utf-8")

    def optimize(self) -> None:
        logger.info("Optimizing system for BTPI-REACT")

        self.update_limits()
        self.update_sysctl()

        result = self._run(["sysctl", "-p", str(self.sysctl_file)])
        if not result.ok:
            logger.warning("sysctl -p reported errors: %s", result.output[:300])

        self.update_daemon_config()
        result = self._run(["systemctl", "restart", "docker"])
        if not result.ok:
            raise DeploymentError(f"Failed to restart docker after updating {self.daemon_file}: {result.output[:300]}")

        logger.info("System optimization completed")


def optimize_system(mode: str, skip: bool = False, optimizer: Optional[SystemOptimizer] = None) -> bool:
    """
    Run the host tuning unless the deployment mode or flags say not to.

    Returns:
        True if the tuning ran.
    """

    if skip or mode == "simple":
        logger.info("Skipping system optimization")
        return False
    (optimizer or SystemOptimizer()).optimize()
    return True
