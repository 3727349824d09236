"""
Snapshot of an existing deployment before it is touched again.
"""

from __future__ import annotations

import tarfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.config import PathsConfig
from ..core.errors import DeploymentError
from ..core.logging import get_logger


logger = get_logger("btpi.orchestrator.backup")

BACKUP_MEMBERS = ("data", "config", "logs")


def backup_name(now: Optional[datetime] = None) -> str:
    return f"btpi-backup-{(now or datetime.now()).strftime('%Y%m%d_%H%M%S')}.tar.gz"


def create_backup(paths: PathsConfig, now: Optional[datetime] = None) -> Optional[Path]:
    """
    Archive ``data``, ``config`` and ``logs`` into ``backups/``.

    Nothing is written for a fresh install (missing or empty data dir).

    Returns:
        The archive path, or None when there was nothing to back up.
    """

    data_dir = paths.data_dir
    if not data_dir.is_dir() or not any(data_dir.iterdir()):
        logger.info("No existing deployment data, skipping backup")
        return None

    paths.backups_dir.mkdir(parents=True, exist_ok=True)
    archive = paths.backups_dir / backup_name(now)
    logger.info("Creating backup of existing deployment at %s", archive)

    try:
        with tarfile.open(archive, "w:gz") as tar:
            for member in BACKUP_MEMBERS:
                source = paths.root_dir / member
                if source.exists():
                    tar.add(source, arcname=member)
    except (OSError, tarfile.TarError) as exc:
        archive.unlink(missing_ok=True)
        raise DeploymentError(f"Backup failed: {exc}") from exc

    logger.info("Backup created: %s", archive)
    return archive
