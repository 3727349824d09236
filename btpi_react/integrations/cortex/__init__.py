"""
Cortex HTTP client.
"""

from .cortex_http import CortexHttpClient

__all__ = ["CortexHttpClient"]
