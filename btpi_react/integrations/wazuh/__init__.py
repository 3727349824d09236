"""
Wazuh manager REST API client.
"""

from .wazuh_http import WazuhHttpClient

__all__ = ["WazuhHttpClient"]
