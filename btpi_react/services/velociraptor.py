"""
Velociraptor: endpoint visibility and DFIR server.

The server and client configuration files embed the bundle's server
certificate and freshly generated writeback keys, so they are rendered
after certificate generation and kept at mode 0600.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Any, Dict, List, Tuple

from ..api.containers import ContainerSpec, PortMapping, VolumeMount
from ..api.health import HealthResult
from ..core.errors import DeploymentError, IntegrationError
from ..core.logging import get_logger
from ..integrations.velociraptor import VelociraptorHttpClient
from .base import Service, ServiceContext
from .rendering import LiteralStr, read_pem, write_yaml


logger = get_logger("btpi.services.velociraptor")

VELOCIRAPTOR_VERSION = "0.74.1"
SERVER_CONFIG_PATH = "/etc/velociraptor/server.config.yaml"
CLIENTS_DIR = "/var/lib/velociraptor/clients"

# (velociraptor subcommand, output file)
CLIENT_PACKAGES = (
    (["config", "client"], "velociraptor_client.config.yaml"),
    (["debian", "client"], "velociraptor_client.deb"),
    (["rpm", "client"], "velociraptor_client.rpm"),
)


def hash_password(password: str, salt_hex: str) -> str:
    """
    Velociraptor's user password hash: hex SHA-256 of salt bytes + password.
    """

    return hashlib.sha256(bytes.fromhex(salt_hex) + password.encode("utf-8")).hexdigest()


class VelociraptorService(Service):
    name = "velociraptor"
    category = "security"
    description = "Endpoint visibility and digital forensics"
    image = "velocidex/velociraptor:latest"
    ports = (PortMapping(8000, 8000), PortMapping(8889, 8889), PortMapping(8001, 8001))
    network_key = "legacy"
    hostname = "velociraptor"

    def client(self, ctx: ServiceContext) -> VelociraptorHttpClient:
        return VelociraptorHttpClient(
            base_url="https://localhost:8889",
            username="admin",
            password=ctx.secret("VELOCIRAPTOR_PASSWORD") or None,
            timeout_seconds=ctx.http_timeout,
        )

    def logs_dir(self, ctx: ServiceContext):
        return ctx.paths.logs_dir / self.name

    def server_config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "server.config.yaml"

    def client_config_file(self, ctx: ServiceContext):
        return self.config_dir(ctx) / "client.config.yaml"

    def _client_section(self, ctx: ServiceContext, ca_cert: LiteralStr) -> Dict[str, Any]:
        return {
            "server_urls": [f"https://{self.hostname}.{ctx.domain}:8000/"],
            "ca_certificate": ca_cert,
            "nonce": ctx.secret("DEPLOYMENT_ID") or secrets.token_hex(8),
            "writeback_darwin": "/usr/local/lib/velociraptor.writeback.yaml",
            "writeback_linux": "/etc/velociraptor.writeback.yaml",
            "writeback_windows": "$ProgramFiles\\Velociraptor\\velociraptor.writeback.yaml",
            "max_poll": 60,
            "max_poll_std": 5,
            "use_self_signed_ssl": True,
        }

    def _logging_section(self) -> Dict[str, Any]:
        return {
            "output_directory": "/var/log/velociraptor",
            "separate_logs_per_component": True,
            "rotation_time": 604800,
            "max_age": 31536000,
        }

    def render_server_config(self, ctx: ServiceContext) -> Dict[str, Any]:
        cert_dir = ctx.paths.certificates_dir
        cert_path = cert_dir / "btpi.crt"
        key_path = cert_dir / "btpi.key"
        if not cert_path.exists() or not key_path.exists():
            raise DeploymentError(f"Server certificate missing in {cert_dir}; generate certificates first")

        certificate = read_pem(cert_path)
        private_key = read_pem(key_path)
        hostname = f"{self.hostname}.{ctx.domain}"
        salt = secrets.token_hex(16)
        deployment_id = ctx.secret("DEPLOYMENT_ID") or "btpi"

        return {
            "version": {"name": "velociraptor", "version": VELOCIRAPTOR_VERSION},
            "Client": self._client_section(ctx, certificate),
            "API": {
                "bind_address": "0.0.0.0",
                "bind_port": 8001,
                "bind_scheme": "tcp",
                "pinned_gw_name": "GRPC_GW",
            },
            "GUI": {
                "bind_address": "0.0.0.0",
                "bind_port": 8889,
                "gw_certificate": certificate,
                "gw_private_key": private_key,
                "internal_cidr": ["127.0.0.1/12", "192.168.0.0/16", "172.16.0.0/12", "10.0.0.0/8"],
            },
            "Frontend": {
                "hostname": hostname,
                "bind_address": "0.0.0.0",
                "bind_port": 8000,
                "certificate": certificate,
                "private_key": private_key,
                "default_client_monitoring_artifacts": ["Generic.Client.Stats"],
                "expected_clients": 10000,
            },
            "Datastore": {
                "implementation": "FileBaseDataStore",
                "location": "/var/lib/velociraptor",
                "filestore_directory": "/var/lib/velociraptor",
            },
            "Writeback": {"private_key": LiteralStr(ctx.openssl.genrsa_pem(2048))},
            "Logging": self._logging_section(),
            "Monitoring": {"bind_address": "127.0.0.1", "bind_port": 8003},
            "defaults": {"hunt_expiry_hours": 168, "notebook_cell_timeout_min": 10},
            "server_type": "linux",
            "obfuscation_nonce": secrets.token_hex(16),
            "users": [
                {
                    "name": "admin",
                    "password_hash": hash_password(ctx.secret("VELOCIRAPTOR_PASSWORD"), salt),
                    "password_salt": salt,
                    "orgs": [{"name": deployment_id, "id": f"O{deployment_id[:8]}"}],
                }
            ],
            "acl_strings": [{"user": "admin", "permissions": "all"}],
        }

    def render_client_config(self, ctx: ServiceContext) -> Dict[str, Any]:
        certificate = read_pem(ctx.paths.certificates_dir / "btpi.crt")
        return {
            "version": {"name": "velociraptor", "version": VELOCIRAPTOR_VERSION},
            "Client": self._client_section(ctx, certificate),
            "Writeback": {"private_key": LiteralStr(ctx.openssl.genrsa_pem(2048))},
            "Logging": self._logging_section(),
            "obfuscation_nonce": secrets.token_hex(16),
        }

    def prepare(self, ctx: ServiceContext) -> None:
        self.data_dir(ctx).mkdir(parents=True, exist_ok=True)
        (self.data_dir(ctx) / "clients").mkdir(exist_ok=True)
        self.logs_dir(ctx).mkdir(parents=True, exist_ok=True)
        write_yaml(self.server_config_file(ctx), self.render_server_config(ctx), mode=0o600)
        write_yaml(self.client_config_file(ctx), self.render_client_config(ctx), mode=0o600)

    def container_spec(self, ctx: ServiceContext) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image,
            network=self.network(ctx),
            ports=list(self.ports),
            env={"VELOCIRAPTOR_CONFIG": SERVER_CONFIG_PATH},
            volumes=[
                VolumeMount(str(self.server_config_file(ctx)), SERVER_CONFIG_PATH, read_only=True),
                VolumeMount(str(self.data_dir(ctx)), "/var/lib/velociraptor"),
                VolumeMount(str(self.logs_dir(ctx)), "/var/log/velociraptor"),
                VolumeMount(str(ctx.paths.certificates_dir), "/etc/velociraptor/certs", read_only=True),
            ],
            command=["--config", SERVER_CONFIG_PATH, "frontend", "-v"],
        )

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        if self.client(ctx).is_api_reachable():
            return HealthResult.ok(self.name, "API responding")
        return HealthResult.unreachable(self.name, "https://localhost:8889/api/v1/GetVersion not responding")

    def post_deploy(self, ctx: ServiceContext) -> None:
        """
        Build client packages inside the container. Failures are logged and
        do not fail the deployment.
        """

        for subcommand, output in CLIENT_PACKAGES:
            command = [
                "./velociraptor",
                "--config", SERVER_CONFIG_PATH,
                *subcommand,
                "--output", f"{CLIENTS_DIR}/{output}",
            ]
            try:
                result = ctx.runtime.exec(self.container_name, command)
            except IntegrationError as exc:
                logger.warning("Could not generate Velociraptor client %s: %s", output, exc)
                continue
            if result.ok:
                logger.info("Generated Velociraptor client %s", output)
            else:
                logger.warning("Velociraptor client %s generation failed: %s", output, result.output[:200])

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [
            ("Velociraptor GUI", f"https://{self.hostname}.{ctx.domain}:8889"),
            ("Velociraptor frontend", f"https://{self.hostname}.{ctx.domain}:8000"),
        ]
