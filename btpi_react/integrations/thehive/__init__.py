"""
TheHive HTTP client.
"""

from .thehive_http import TheHiveHttpClient

__all__ = ["TheHiveHttpClient"]
