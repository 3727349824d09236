"""
TLS material for the bundle.

Two independent sets are produced under ``config/certificates``:

- ``ca.key``/``ca.crt`` and a SAN server certificate ``btpi.key``/``btpi.crt``
  used by Velociraptor and the other HTTPS front ends;
- ``root-ca.pem``, ``filebeat.pem`` and ``filebeat-key.pem`` used by the
  Filebeat shipper inside the Wazuh manager.

Both steps are idempotent: existing material is never overwritten.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ..core.logging import get_logger
from ..integrations.openssl import OpenSslCli


logger = get_logger("btpi.orchestrator.certificates")

CA_SUBJECT = "/C=US/ST=State/L=City/O=BTPI-REACT/CN=BTPI-REACT-CA"
CERT_DAYS = 365
KEY_BITS = 4096

WAZUH_CERT_FILES = ("root-ca.pem", "filebeat.pem", "filebeat-key.pem")


def server_subject(domain: str) -> str:
    return f"/C=US/ST=State/L=City/O=BTPI-REACT/CN={domain}"


def render_san_config(domain: str, server_ip: str) -> str:
    """
    OpenSSL extension file with the subject alternative names of the
    server certificate.
    """

    ip_entries = ["127.0.0.1"]
    if server_ip and server_ip not in ip_entries:
        ip_entries.append(server_ip)

    lines = [
        "[req]",
        "distinguished_name = req_distinguished_name",
        "req_extensions = v3_req",
        "prompt = no",
        "",
        "[req_distinguished_name]",
        "C = US",
        "ST = State",
        "L = City",
        "O = BTPI-REACT",
        f"CN = {domain}",
        "",
        "[v3_req]",
        "keyUsage = keyEncipherment, dataEncipherment",
        "extendedKeyUsage = serverAuth",
        "subjectAltName = @alt_names",
        "",
        "[alt_names]",
        f"DNS.1 = {domain}",
        f"DNS.2 = *.{domain}",
        "DNS.3 = localhost",
    ]
    lines += [f"IP.{index} = {ip}" for index, ip in enumerate(ip_entries, start=1)]
    return "\n".join(lines) + "\n"


def _restrict(path: Path, mode: int) -> None:
    if path.exists():
        os.chmod(path, mode)


def generate_ssl_certificates(
    cert_dir: Path,
    server_ip: str,
    domain: str = "btpi.local",
    openssl: Optional[OpenSslCli] = None,
) -> bool:
    """
    Create the CA and the SAN server certificate unless ``btpi.crt`` exists.

    Returns:
        True if new material was generated.

    Raises:
        IntegrationError: If any ``openssl`` invocation fails.
    """

    openssl = openssl or OpenSslCli()
    cert_dir.mkdir(parents=True, exist_ok=True)

    if (cert_dir / "btpi.crt").exists():
        logger.info("SSL certificates already exist")
        return False

    logger.info("Generating SSL certificates for %s (%s)", domain, server_ip)

    ca_key = cert_dir / "ca.key"
    ca_crt = cert_dir / "ca.crt"
    if not ca_crt.exists():
        openssl.genrsa(ca_key, KEY_BITS)
        openssl.req_x509(ca_key, ca_crt, CA_SUBJECT, days=CERT_DAYS)

    key = cert_dir / "btpi.key"
    csr = cert_dir / "btpi.csr"
    san_conf = cert_dir / "btpi.conf"
    san_conf.write_text(render_san_config(domain, server_ip), encoding="utf-8")

    openssl.genrsa(key, KEY_BITS)
    openssl.req_new(key, csr, server_subject(domain))
    openssl.x509_sign(
        csr,
        ca_crt,
        ca_key,
        cert_dir / "btpi.crt",
        days=CERT_DAYS,
        extfile=san_conf,
        extensions="v3_req",
    )

    for name in ("ca.key", "btpi.key"):
        _restrict(cert_dir / name, 0o600)
    for name in ("ca.crt", "btpi.crt"):
        _restrict(cert_dir / name, 0o644)

    logger.info("SSL certificates generated")
    return True


def generate_wazuh_certificates(cert_dir: Path, openssl: Optional[OpenSslCli] = None) -> bool:
    """
    Create the Filebeat certificate set used by the Wazuh manager.

    Returns:
        True if new material was generated.
    """

    if all((cert_dir / name).exists() for name in WAZUH_CERT_FILES):
        return False

    openssl = openssl or OpenSslCli()
    cert_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Generating Wazuh certificates")

    root_key = cert_dir / "root-ca-key.pem"
    root_crt = cert_dir / "root-ca.pem"
    openssl.genrsa(root_key, 2048)
    openssl.req_x509(root_key, root_crt, "/C=US/O=BTPI-REACT/CN=wazuh-root-ca", days=CERT_DAYS)

    key = cert_dir / "filebeat-key.pem"
    csr = cert_dir / "filebeat.csr"
    openssl.genrsa(key, 2048)
    openssl.req_new(key, csr, "/C=US/O=BTPI-REACT/CN=wazuh-manager")
    openssl.x509_sign(csr, root_crt, root_key, cert_dir / "filebeat.pem", days=CERT_DAYS)

    _restrict(root_key, 0o600)
    _restrict(key, 0o600)
    _restrict(root_crt, 0o644)
    _restrict(cert_dir / "filebeat.pem", 0o644)
    return True
