"""
Unit Tests: Worker Nodes
========================
LocalNode runs real (tiny) Python subprocesses. DockerNode is exercised
against a mocked Docker SDK; no Docker daemon is required.
"""
import os
import sys
import threading
import pytest
from unittest.mock import patch, MagicMock

from docker.errors import APIError, NotFound

from mstest_runner.core.exceptions import BuildInterrupted
from mstest_runner.executor.nodes import DockerNode, LocalNode, parse_path_mappings
from mstest_runner.utils.build_listener import BuildListener


# ---------------------------------------------------------------------------
# 1. Path mappings
# ---------------------------------------------------------------------------
class TestPathMappings:

    def test_parse(self):
        raw = r"C:\shared=D:\local; /mnt/tools = /opt/tools ;broken;=nosource;"
        assert parse_path_mappings(raw) == [
            (r"C:\shared", r"D:\local"),
            ("/mnt/tools", "/opt/tools"),
        ]

    def test_parse_empty(self):
        assert parse_path_mappings("") == []

    def test_translate_unmapped_path(self):
        assert LocalNode(path_mappings=[("/a", "/b")]).translate_path("/c/x") == "/c/x"

    def test_translate_when_cancelled(self):
        node = LocalNode()
        node.cancel_event.set()
        with pytest.raises(BuildInterrupted):
            node.translate_path("/a")


# ---------------------------------------------------------------------------
# 2. LocalNode filesystem
# ---------------------------------------------------------------------------
class TestLocalNodeFiles:

    def test_exists(self, tmp_path):
        target = tmp_path / "result.trx"
        node = LocalNode()
        assert node.exists(str(target)) is False
        target.write_text("<TestRun/>")
        assert node.exists(str(target)) is True

    def test_delete_file(self, tmp_path):
        target = tmp_path / "result.trx"
        target.write_text("<TestRun/>")
        LocalNode().delete(str(target))
        assert not target.exists()

    def test_delete_directory(self, tmp_path):
        target = tmp_path / "results"
        (target / "In").mkdir(parents=True)
        (target / "In" / "data.coverage").write_text("x")
        LocalNode().delete(str(target))
        assert not target.exists()

    def test_delete_missing_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            LocalNode().delete(str(tmp_path / "absent.trx"))

    def test_uri(self, tmp_path):
        assert LocalNode().to_uri(str(tmp_path / "r.trx")).startswith("file://")


# ---------------------------------------------------------------------------
# 3. LocalNode processes
# ---------------------------------------------------------------------------
class TestLocalNodeLaunch:

    def test_exit_code_and_output(self, tmp_path):
        listener = BuildListener()
        code = LocalNode().launch(
            [sys.executable, "-c", "import sys; print('Passed  UnitTest1'); sys.exit(3)"],
            dict(os.environ), str(tmp_path), listener,
        )
        assert code == 3
        assert "Passed  UnitTest1" in listener.lines

    def test_stderr_merged(self, tmp_path):
        listener = BuildListener()
        LocalNode().launch(
            [sys.executable, "-c", "import sys; sys.stderr.write('oops\\n')"],
            dict(os.environ), str(tmp_path), listener,
        )
        assert "oops" in listener.lines

    def test_env_and_cwd(self, tmp_path):
        listener = BuildListener()
        env = dict(os.environ, MSTEST_RUNNER_PROBE="42")
        code = LocalNode().launch(
            [sys.executable, "-c", "import os; print(os.environ['MSTEST_RUNNER_PROBE']); print(os.getcwd())"],
            env, str(tmp_path), listener,
        )
        assert code == 0
        assert listener.lines[0] == "42"
        assert os.path.samefile(listener.lines[1], str(tmp_path))

    def test_missing_executable_raises_oserror(self, tmp_path):
        with pytest.raises(OSError):
            LocalNode().launch(["definitely-not-mstest-xyz"], dict(os.environ), str(tmp_path), BuildListener())

    def test_cancel_before_launch(self, tmp_path):
        node = LocalNode()
        node.cancel_event.set()
        with pytest.raises(BuildInterrupted):
            node.launch([sys.executable, "-c", "pass"], dict(os.environ), str(tmp_path), BuildListener())

    def test_cancel_while_running_kills_process(self, tmp_path):
        node = LocalNode(poll_interval=0.05)
        timer = threading.Timer(0.3, node.cancel_event.set)
        timer.start()
        try:
            with pytest.raises(BuildInterrupted):
                node.launch(
                    [sys.executable, "-c", "import time; time.sleep(30)"],
                    dict(os.environ), str(tmp_path), BuildListener(),
                )
        finally:
            timer.cancel()


# ---------------------------------------------------------------------------
# 4. DockerNode
# ---------------------------------------------------------------------------
def _container():
    container = MagicMock()
    container.name = "win-agent"
    container.id = "c0ffee"
    return container


class TestDockerNode:

    def test_name_from_container(self):
        assert DockerNode(_container()).name == "win-agent"

    def test_exists(self):
        container = _container()
        container.exec_run.return_value = (0, b"")
        assert DockerNode(container).exists("/w/out.trx") is True
        container.exec_run.assert_called_once_with(["test", "-e", "/w/out.trx"])

        container.exec_run.return_value = (1, b"")
        assert DockerNode(container).exists("/w/out.trx") is False

    def test_delete_failure_raises_oserror(self):
        container = _container()
        container.exec_run.return_value = (1, b"permission denied")
        with pytest.raises(OSError, match="permission denied"):
            DockerNode(container).delete("/w/out.trx")

    def test_api_error_becomes_oserror(self):
        container = _container()
        container.exec_run.side_effect = APIError("daemon gone")
        with pytest.raises(OSError):
            DockerNode(container).exists("/w/out.trx")

    def test_launch_streams_and_returns_exit_code(self):
        container = _container()
        api = container.client.api
        api.exec_create.return_value = {"Id": "exec1234567890"}
        api.exec_start.return_value = iter([b"Passed  A\nFail", b"ed  B\n", b"Summary"])
        api.exec_inspect.return_value = {"ExitCode": 1}

        listener = BuildListener()
        code = DockerNode(container).launch(["mstest", "/noisolation"], {"A": "1"}, "/w", listener)

        assert code == 1
        assert listener.lines == ["Passed  A", "Failed  B", "Summary"]
        api.exec_create.assert_called_once_with(
            "c0ffee", ["mstest", "/noisolation"],
            environment={"A": "1"}, workdir="/w", stdout=True, stderr=True,
        )

    def test_launch_cancelled_mid_stream(self):
        container = _container()
        api = container.client.api
        api.exec_create.return_value = {"Id": "exec1234567890"}
        node = DockerNode(container)

        def _chunks():
            yield b"first\n"
            node.cancel_event.set()
            yield b"second\n"

        api.exec_start.return_value = _chunks()
        with pytest.raises(BuildInterrupted):
            node.launch(["mstest"], {}, "/w", BuildListener())

    def test_from_name_not_found(self):
        with patch("mstest_runner.executor.nodes.docker.from_env") as mock_from_env:
            mock_from_env.return_value.containers.get.side_effect = NotFound("no such container")
            with pytest.raises(OSError, match="not found"):
                DockerNode.from_name("missing")

    def test_from_name_attaches(self):
        container = _container()
        with patch("mstest_runner.executor.nodes.docker.from_env") as mock_from_env:
            mock_from_env.return_value.containers.get.return_value = container
            node = DockerNode.from_name("win-agent", unix=False)
        assert node.container is container
        assert node.is_unix is False

    def test_from_name_uses_given_client(self):
        client = MagicMock()
        client.containers.get.return_value = _container()
        with patch("mstest_runner.executor.nodes.docker.from_env") as mock_from_env:
            DockerNode.from_name("win-agent", client=client)
        mock_from_env.assert_not_called()
        client.containers.get.assert_called_once_with("win-agent")

    def test_resolve_path_follows_node_platform(self):
        assert DockerNode(_container()).resolve_path("out.trx", "/w") == "/w/out.trx"
        assert DockerNode(_container()).resolve_path("/r/out.trx", "/w") == "/r/out.trx"
        windows = DockerNode(_container(), unix=False)
        assert windows.resolve_path("out.trx", "C:\\w") == "C:\\w\\out.trx"
