"""
Low-level client for the ``docker`` command line.

This module is responsible for:
- locating the docker binary
- running docker subcommands with a timeout
- turning failures into ``IntegrationError``
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ...core.logging import get_logger
from ..process import CommandResult, run_command


logger = get_logger("btpi.integrations.docker.cli")


@dataclass
class DockerCli:
    """
    Simple wrapper that runs ``docker <args>``.
    """

    binary: str = "docker"
    timeout_seconds: int = 300

    def run(
        self,
        args: Sequence[str],
        check: bool = True,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """
        Run a docker subcommand.

        Raises:
            IntegrationError: If the command fails and ``check`` is set.
        """

        return run_command(
            [self.binary, *args],
            check=check,
            timeout=timeout or self.timeout_seconds,
        )

    def lines(self, args: Sequence[str], check: bool = True) -> List[str]:
        """Run a subcommand and return its non-empty stdout lines."""
        result = self.run(args, check=check)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def version(self) -> Optional[str]:
        result = self.run(["--version"], check=False, timeout=30)
        return result.stdout.strip() if result.ok else None

    def compose_version(self) -> Optional[str]:
        result = self.run(["compose", "version", "--short"], check=False, timeout=30)
        return result.stdout.strip() if result.ok else None
