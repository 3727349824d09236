"""
Docker integration for BTPI-REACT.
"""

from .docker_cli import DockerCli
from .docker_client import DockerContainerRuntime

__all__ = ["DockerCli", "DockerContainerRuntime"]
