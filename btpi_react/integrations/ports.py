"""
TCP port checks (the ``nc -z`` equivalent).
"""

from __future__ import annotations

import socket


def is_port_open(port: int, host: str = "127.0.0.1", timeout: float = 2.0) -> bool:
    """
    Return True if something accepts TCP connections on ``host:port``.
    """

    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False
