"""
Shared API dependencies.
The installation registry and the Docker client are created once per
process and on first use.
"""
import threading
from typing import Optional

import docker
from docker.errors import DockerException

from mstest_runner.core.config import MSTEST_REGISTRY_FILE
from mstest_runner.tools.registry import InstallationRegistry

_registry: Optional[InstallationRegistry] = None
_registry_lock = threading.Lock()

_docker_client: Optional[docker.DockerClient] = None
_docker_lock = threading.Lock()


def get_registry() -> InstallationRegistry:
    global _registry
    with _registry_lock:
        if _registry is None:
            registry = InstallationRegistry(MSTEST_REGISTRY_FILE)
            registry.load()
            _registry = registry
    return _registry


def get_docker_client() -> docker.DockerClient:
    """Process-wide Docker client; raises OSError when the daemon is unreachable."""
    global _docker_client
    with _docker_lock:
        if _docker_client is None:
            try:
                _docker_client = docker.from_env()
            except DockerException as e:
                raise OSError(f"Docker unavailable: {e}") from e
    return _docker_client


def close_docker_client() -> None:
    global _docker_client
    with _docker_lock:
        if _docker_client is not None:
            _docker_client.close()
            _docker_client = None
