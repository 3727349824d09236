"""
Wrapper around the ``openssl`` binary for key and certificate generation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ...core.logging import get_logger
from ..process import run_command


logger = get_logger("btpi.integrations.openssl")

PathLike = Union[str, Path]


@dataclass
class OpenSslCli:
    """
    Runs ``openssl`` subcommands. Every method raises ``IntegrationError``
    on a non-zero exit.
    """

    binary: str = "openssl"
    timeout_seconds: int = 120

    def _run(self, *args: str) -> str:
        result = run_command([self.binary, *args], timeout=self.timeout_seconds)
        return result.stdout

    def genrsa(self, key_path: PathLike, bits: int = 4096) -> None:
        logger.debug("Generating %s-bit RSA key %s", bits, key_path)
        self._run("genrsa", "-out", str(key_path), str(bits))

    def genrsa_pem(self, bits: int = 2048) -> str:
        """
        Generate an RSA key and return it as PEM text.
        """

        return self._run("genrsa", str(bits))

    def req_x509(self, key_path: PathLike, cert_path: PathLike, subject: str, days: int = 365) -> None:
        """
        Create a self-signed certificate (used for the CA).
        """

        self._run(
            "req", "-new", "-x509",
            "-days", str(days),
            "-key", str(key_path),
            "-out", str(cert_path),
            "-subj", subject,
        )

    def req_new(
        self,
        key_path: PathLike,
        csr_path: PathLike,
        subject: str,
        config_path: Optional[PathLike] = None,
    ) -> None:
        args = ["req", "-new", "-key", str(key_path), "-out", str(csr_path), "-subj", subject]
        if config_path:
            args += ["-config", str(config_path)]
        self._run(*args)

    def x509_sign(
        self,
        csr_path: PathLike,
        ca_cert: PathLike,
        ca_key: PathLike,
        cert_path: PathLike,
        days: int = 365,
        extfile: Optional[PathLike] = None,
        extensions: Optional[str] = None,
    ) -> None:
        """
        Sign a CSR with the CA (``openssl x509 -req``).
        """

        args = [
            "x509", "-req",
            "-in", str(csr_path),
            "-CA", str(ca_cert),
            "-CAkey", str(ca_key),
            "-CAcreateserial",
            "-out", str(cert_path),
            "-days", str(days),
        ]
        if extensions:
            args += ["-extensions", extensions]
        if extfile:
            args += ["-extfile", str(extfile)]
        self._run(*args)

