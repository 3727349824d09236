"""
Velociraptor GUI/API client.
"""

from .velociraptor_http import VelociraptorHttpClient

__all__ = ["VelociraptorHttpClient"]
