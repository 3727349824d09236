"""
Kasm Workspaces: browser-isolated analyst desktops, installed natively.
"""

from __future__ import annotations

from typing import List, Tuple

from ..api.containers import PortMapping
from ..api.health import HealthResult
from ..integrations.kasm import KasmInstaller
from .base import Service, ServiceContext


class KasmService(Service):
    name = "kasm"
    category = "kasm"
    description = "Kasm Workspaces (native installer)"
    ports = (PortMapping(8443, 8443),)
    hostname = "kasm"
    native = True

    def installer(self, ctx: ServiceContext) -> KasmInstaller:
        return KasmInstaller(ctx.runtime)

    def prepare(self, ctx: ServiceContext) -> None:
        """Nothing to render; the installer owns /opt/kasm."""

    def install_native(self, ctx: ServiceContext) -> None:
        self.installer(ctx).install()

    def check_health(self, ctx: ServiceContext) -> HealthResult:
        if self.installer(ctx).is_serving(timeout_seconds=ctx.http_timeout):
            return HealthResult.ok(self.name, "https://localhost:8443 responding")
        return HealthResult.unreachable(self.name, "port 8443 not responding")

    def access_urls(self, ctx: ServiceContext) -> List[Tuple[str, str]]:
        return [("Kasm Workspaces", f"https://{self.hostname}.{ctx.domain}:8443")]
