"""
Thin wrapper around ``subprocess.run`` for external binaries
(docker, openssl, sysctl, systemctl, installers).
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from ..core.errors import IntegrationError
from ..core.logging import get_logger


logger = get_logger("btpi.integrations.process")


@dataclass
class CommandResult:
    """
    Exit status and captured output of an external command.
    """

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout + self.stderr).strip()


def run_command(
    args: Sequence[str],
    check: bool = True,
    timeout: Optional[int] = 300,
    input_text: Optional[str] = None,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """
    Run a command and capture its output.

    Raises:
        IntegrationError: If the binary is missing, times out, or (with
            ``check``) exits non-zero.
    """

    argv = [str(arg) for arg in args]
    logger.debug("Running command: %s", " ".join(argv))

    try:
        completed = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input_text,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as exc:
        raise IntegrationError(f"Command not found: {argv[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise IntegrationError(f"Command timed out after {timeout}s: {' '.join(argv)}") from exc

    result = CommandResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )

    if not result.ok:
        logger.debug("Command exited %s: %s", result.returncode, result.output[:500])
        if check:
            raise IntegrationError(
                f"Command failed ({result.returncode}): {' '.join(argv)}: {result.output[:500]}"
            )

    return result
