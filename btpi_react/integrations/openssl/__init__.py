"""
OpenSSL command line integration.
"""

from .openssl_cli import OpenSslCli

__all__ = ["OpenSslCli"]
