"""
Kasm Workspaces native installer integration.
"""

from .kasm_installer import KasmInstaller, KasmRelease, KasmStatus

__all__ = ["KasmInstaller", "KasmRelease", "KasmStatus"]
