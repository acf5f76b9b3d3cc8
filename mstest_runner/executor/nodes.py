"""
Worker Nodes
============
Where a build step's files live and where its process runs.

A Node provides the filesystem and process operations the builder needs:
    - translate_path : map a controller-visible path to the node-local one
    - resolve_path   : anchor a relative path at a directory on the node
    - exists / delete: file checks on the node
    - launch         : run a command, stream its output, return the exit code

Implementations:
    LocalNode : this machine, via os / subprocess
    DockerNode: a running container, via the Docker SDK

Errors:
    Infrastructure failures surface as OSError. When the node's cancel_event
    is set, blocking operations raise BuildInterrupted instead.
"""
import os
import ntpath
import shutil
import logging
import posixpath
import threading
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

import docker
from docker.errors import APIError, DockerException, NotFound

from mstest_runner.core.config import PROCESS_POLL_INTERVAL
from mstest_runner.core.exceptions import BuildInterrupted
from mstest_runner.utils.build_listener import BuildListener

logger = logging.getLogger(__name__)


def parse_path_mappings(raw: str) -> list[tuple[str, str]]:
    """
    Parse "from=to;from=to" into prefix mapping pairs.

    Empty segments and segments without "=" are ignored.
    """
    mappings = []
    for segment in (raw or "").split(";"):
        if "=" not in segment:
            continue
        source, target = segment.split("=", 1)
        source, target = source.strip(), target.strip()
        if source:
            mappings.append((source, target))
    return mappings


class Node(ABC):
    """Base class for worker nodes."""

    def __init__(self, name: str,
                 path_mappings: Optional[Sequence[tuple[str, str]]] = None,
                 cancel_event: Optional[threading.Event] = None) -> None:
        self.name = name
        # Longest prefix wins
        self.path_mappings = sorted(path_mappings or [], key=lambda m: len(m[0]), reverse=True)
        self.cancel_event = cancel_event or threading.Event()

    @property
    @abstractmethod
    def is_unix(self) -> bool:
        ...

    def check_interrupted(self) -> None:
        if self.cancel_event.is_set():
            raise BuildInterrupted(f"Build on {self.name} was cancelled")

    def translate_path(self, path: str) -> str:
        """Map ``path`` through the node's prefix mappings."""
        self.check_interrupted()
        for source, target in self.path_mappings:
            if path.startswith(source):
                return target + path[len(source):]
        return path

    def resolve_path(self, path: str, base: str) -> str:
        """Anchor a relative ``path`` at ``base`` using the node's path rules."""
        flavour = posixpath if self.is_unix else ntpath
        return flavour.join(base, path)

    def to_uri(self, path: str) -> str:
        return f"file://{self.name}/{path.lstrip('/')}"

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def launch(self, cmd: Sequence[str], env: dict[str, str], cwd: str,
               listener: BuildListener) -> int:
        ...


# ---------------------------------------------------------------------------
# Local execution
# ---------------------------------------------------------------------------
class LocalNode(Node):
    """The machine this service runs on."""

    def __init__(self, name: str = "local",
                 path_mappings: Optional[Sequence[tuple[str, str]]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 poll_interval: float = PROCESS_POLL_INTERVAL) -> None:
        super().__init__(name, path_mappings, cancel_event)
        self.poll_interval = poll_interval

    @property
    def is_unix(self) -> bool:
        return os.name != "nt"

    def resolve_path(self, path: str, base: str) -> str:
        return os.path.join(base, path)

    def to_uri(self, path: str) -> str:
        return Path(path).absolute().as_uri()

    def exists(self, path: str) -> bool:
        self.check_interrupted()
        try:
            os.stat(path)
        except FileNotFoundError:
            return False
        return True

    def delete(self, path: str) -> None:
        self.check_interrupted()
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def launch(self, cmd: Sequence[str], env: dict[str, str], cwd: str,
               listener: BuildListener) -> int:
        self.check_interrupted()
        proc = subprocess.Popen(
            list(cmd),
            env=env,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
        logger.info("Launched pid=%d on %s", proc.pid, self.name)

        pump = threading.Thread(target=self._pump_output, args=(proc, listener), daemon=True)
        pump.start()

        while True:
            try:
                exit_code = proc.wait(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if self.cancel_event.is_set():
                    logger.warning("Cancelling pid=%d on %s", proc.pid, self.name)
                    proc.kill()
                    proc.wait()
                    pump.join()
                    raise BuildInterrupted(f"Build on {self.name} was cancelled")

        pump.join()
        return exit_code

    @staticmethod
    def _pump_output(proc: subprocess.Popen, listener: BuildListener) -> None:
        for line in proc.stdout:
            listener.write_output(line)
        proc.stdout.close()


# ---------------------------------------------------------------------------
# Container execution
# ---------------------------------------------------------------------------
class DockerNode(Node):
    """
    A running Docker container used as a worker.

    The container must already exist; its lifecycle belongs to whoever
    provisioned it. Commands run through ``docker exec``.
    """

    def __init__(self, container, name: Optional[str] = None,
                 path_mappings: Optional[Sequence[tuple[str, str]]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 unix: bool = True) -> None:
        super().__init__(name or container.name, path_mappings, cancel_event)
        self.container = container
        self._unix = unix

    @classmethod
    def from_name(cls, container_name: str, client: Optional[docker.DockerClient] = None,
                  **kwargs) -> "DockerNode":
        """Attach to a running container by name or ID, using ``client`` when given."""
        try:
            if client is None:
                client = docker.from_env()
            container = client.containers.get(container_name)
        except NotFound as e:
            raise OSError(f"Docker container '{container_name}' not found") from e
        except DockerException as e:
            raise OSError(f"Docker unavailable: {e}") from e
        return cls(container, **kwargs)

    @property
    def is_unix(self) -> bool:
        return self._unix

    def exists(self, path: str) -> bool:
        self.check_interrupted()
        exit_code, _ = self._exec(["test", "-e", path])
        return exit_code == 0

    def delete(self, path: str) -> None:
        self.check_interrupted()
        exit_code, output = self._exec(["rm", "-rf", path])
        if exit_code != 0:
            raise OSError(f"Cannot delete {path} on {self.name}: {output.decode('utf-8', errors='replace')}")

    def launch(self, cmd: Sequence[str], env: dict[str, str], cwd: str,
               listener: BuildListener) -> int:
        self.check_interrupted()
        api = self.container.client.api
        try:
            exec_id = api.exec_create(
                self.container.id,
                list(cmd),
                environment=env,
                workdir=cwd,
                stdout=True,
                stderr=True,
            )["Id"]
            logger.info("Launched exec %s in container %s", exec_id[:12], self.name)

            pending = ""
            for chunk in api.exec_start(exec_id, stream=True):
                # exec processes cannot be killed through the API; stop
                # following the output and let the container owner reap it
                self.check_interrupted()
                pending += chunk.decode("utf-8", errors="replace")
                *complete, pending = pending.split("\n")
                for line in complete:
                    listener.write_output(line)
            if pending:
                listener.write_output(pending)

            return api.exec_inspect(exec_id).get("ExitCode", -1)
        except APIError as e:
            raise OSError(f"Docker exec failed on {self.name}: {e}") from e

    def _exec(self, cmd: list[str]) -> tuple[int, bytes]:
        try:
            return self.container.exec_run(cmd)
        except APIError as e:
            raise OSError(f"Docker exec failed on {self.name}: {e}") from e
