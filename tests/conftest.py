"""
Shared test doubles.
FakeNode records every node operation so builder tests need no processes.
"""
import pytest

from mstest_runner.executor.nodes import Node


class FakeNode(Node):
    def __init__(self, existing=(), exit_code=0, unix=True, path_mappings=None,
                 exists_error=None, delete_error=None, launch_error=None,
                 output=("Passed  Tests.UnitTest1",)):
        super().__init__("fake-node", path_mappings)
        self.existing = set(existing)
        self.exit_code = exit_code
        self._unix = unix
        self.exists_error = exists_error
        self.delete_error = delete_error
        self.launch_error = launch_error
        self.output = output
        self.deleted = []
        self.launched = []

    @property
    def is_unix(self):
        return self._unix

    def exists(self, path):
        if self.exists_error is not None:
            raise self.exists_error
        return path in self.existing

    def delete(self, path):
        if self.delete_error is not None:
            raise self.delete_error
        self.existing.discard(path)
        self.deleted.append(path)

    def launch(self, cmd, env, cwd, listener):
        self.launched.append({"cmd": list(cmd), "env": env, "cwd": cwd})
        if self.launch_error is not None:
            raise self.launch_error
        for line in self.output:
            listener.write_output(line)
        return self.exit_code


@pytest.fixture
def fake_node_cls():
    return FakeNode
