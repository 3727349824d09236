"""
BTPI-REACT: Blue Team Portable Infrastructure, Rapid Emergency Analysis &
Counter-Threat.

Deploys and wires a bundle of security tools (Elasticsearch, Cassandra,
Wazuh, Velociraptor, Kasm Workspaces, Portainer, TheHive, Cortex) on a
single Docker host.
"""

from .core.config import BTPI_VERSION

__version__ = BTPI_VERSION
