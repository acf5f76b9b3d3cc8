"""
MSTest Builder
==============
Runs MSTest as a build step and reduces the exit code to pass/fail.

Lifecycle of perform():
    1. Resolve the installation (node, then environment) and check it exists
    2. Validate the result file and delete a stale one
    3. Validate the test file list
    4. Assemble the command (command_line.build_command)
    5. Launch on the node in the workspace with the build environment
    6. Exit code 0 → True, anything else → False

FAILURE RULES:
    - Every fatal condition is written to the build log and returns False.
    - Nothing is raised past perform() except BuildInterrupted.
    - A non-zero exit code is the normal "tests failed" outcome.
"""
import time
import logging
from typing import Optional

from mstest_runner.core.constants import DEFAULT_EXECUTABLE
from mstest_runner.core.exceptions import BuildInterrupted
from mstest_runner.executor.command_line import build_command, expand_test_files
from mstest_runner.models.invocation_config import InvocationConfig
from mstest_runner.models.step_result import StepResult
from mstest_runner.models.tool_installation import ToolInstallation
from mstest_runner.state.build_context import BuildContext
from mstest_runner.tools.registry import InstallationRegistry, resolve

logger = logging.getLogger(__name__)


class MsTestBuilder:
    """
    Build step that runs MSTest for one job configuration.

    The registry is injected and read at every perform(), so installation
    changes apply to the next build without rebuilding the step.
    """

    def __init__(self, config: InvocationConfig, registry: InstallationRegistry) -> None:
        self.config = config
        self.registry = registry

    def get_installation(self) -> Optional[ToolInstallation]:
        return resolve(self.config.mstest_name, self.registry.get_installations())

    def perform(self, context: BuildContext) -> bool:
        listener = context.listener
        node = context.node
        config = self.config

        # ------------------------------------------------------------------
        # 1. Resolve executable
        # ------------------------------------------------------------------
        exec_path = None
        default_args = None
        installation = self.get_installation()
        if installation is None:
            listener.println(f"Path To MSTest.exe: {DEFAULT_EXECUTABLE}")
        else:
            installation = installation.for_node(node, listener)
            installation = installation.for_environment(context.env)
            exec_path = installation.home
            try:
                if not node.exists(exec_path):
                    listener.fatal_error(f"{exec_path} doesn't exist")
                    return False
            except OSError as e:
                listener.fatal_error(f"Failed checking for existence of {exec_path}").print_exception(e)
                return False
            listener.println(f"Path To MSTest.exe: {exec_path}")
            default_args = installation.default_args

        # ------------------------------------------------------------------
        # 2. Result file
        # ------------------------------------------------------------------
        if not config.result_file or not config.result_file.strip():
            listener.fatal_error("Result file name was not specified")
            return False

        # MSTest runs in the workspace, so a relative name lands there
        result_path = node.resolve_path(config.result_file, context.workspace)
        try:
            if node.exists(result_path):
                listener.println(f"Delete old result file {node.to_uri(result_path)}")
                node.delete(result_path)
        except (OSError, BuildInterrupted) as e:
            listener.fatal_error("Fail to delete old result file").print_exception(e)
            return False

        # ------------------------------------------------------------------
        # 3. Test files
        # ------------------------------------------------------------------
        if not expand_test_files(config.test_files or "", context.env, context.build_variables):
            listener.fatal_error("No test files are specified")
            return False

        # ------------------------------------------------------------------
        # 4. Command
        # ------------------------------------------------------------------
        command = build_command(
            config,
            exec_path=exec_path,
            default_args=default_args,
            env=context.env,
            build_variables=context.build_variables,
            is_unix=node.is_unix,
        )
        context.command = command.to_list()

        # ------------------------------------------------------------------
        # 5-6. Launch and interpret
        # ------------------------------------------------------------------
        listener.println(f"Executing command: {command.to_string_with_quote()}")
        try:
            exit_code = node.launch(command.to_list(), context.env, context.workspace, listener)
        except OSError as e:
            listener.fatal_error("MSTest command execution failed").print_exception(e)
            return False

        logger.info("MSTest finished | node=%s | exit=%d", node.name, exit_code)
        return exit_code == 0


def run_step(builder: MsTestBuilder, context: BuildContext) -> StepResult:
    """
    Run ``builder`` and collect the outcome for callers outside the build.

    BuildInterrupted propagates unchanged.
    """
    start_time = time.monotonic()
    success = builder.perform(context)
    result = StepResult(
        success=success,
        command=list(context.command),
        log=context.listener.text,
        log_excerpt=context.listener.excerpt(),
        execution_time_seconds=round(time.monotonic() - start_time, 3),
    )
    logger.info(
        "Step complete | success=%s | time=%.2fs | node=%s",
        result.success, result.execution_time_seconds, context.node.name,
    )
    return result
