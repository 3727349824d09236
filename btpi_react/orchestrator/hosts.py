"""
Local name resolution for the bundle's subdomains.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from ..core.errors import DeploymentError
from ..core.logging import get_logger
from .system import replace_marked_block


logger = get_logger("btpi.orchestrator.hosts")

HOSTS_BEGIN = "# BTPI-REACT entries"
HOSTS_END = "# End BTPI-REACT entries"

BASE_SUBDOMAINS = ("wazuh", "velociraptor", "kasm", "portainer")
OPTIONAL_SUBDOMAINS = ("thehive", "cortex")


def hosts_entries(server_ip: str, domain: str, selected: Sequence[str] = ()) -> List[str]:
    names = list(BASE_SUBDOMAINS) + [name for name in OPTIONAL_SUBDOMAINS if name in selected]
    return [f"{server_ip} {domain}"] + [f"{server_ip} {name}.{domain}" for name in names]


def update_hosts_file(
    server_ip: str,
    domain: str,
    selected: Sequence[str] = (),
    hosts_file: Path = Path("/etc/hosts"),
) -> List[str]:
    """
    Replace the bundle's block in the hosts file.

    Returns:
        The lines written inside the block.

    Raises:
        DeploymentError: If the hosts file cannot be rewritten.
    """

    entries = hosts_entries(server_ip, domain, selected)
    try:
        current = hosts_file.read_text(encoding="utf-8") if hosts_file.exists() else ""
        hosts_file.write_text(replace_marked_block(current, entries, HOSTS_BEGIN, HOSTS_END), encoding="utf-8")
    except OSError as exc:
        raise DeploymentError(f"Failed to update {hosts_file}: {exc}") from exc

    logger.info("Hosts file updated with %s entries for %s", len(entries), domain)
    return entries
