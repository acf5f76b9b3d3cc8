"""
Command Line Builder
====================
Assembles the MSTest command line for one build step.

Builder never executes anything and never touches a node. It returns a
CommandLine that the MsTestBuilder hands to the node's launch().

Argument order (fixed):
    <exec> <default args...> /resultsfile:<file> /noisolation
    <extra args...> [/category:<cats>] [/testcontainer:<file>]...

Non-Unix nodes get the whole command wrapped as
    cmd.exe /C <command...> && exit %ERRORLEVEL%

Deterministic: same config + same variables → same command, always.
"""
import re
from typing import Iterator, Mapping, Optional

from mstest_runner.core.constants import (
    CATEGORY_FLAG,
    DEFAULT_EXECUTABLE,
    NO_ISOLATION_FLAG,
    RESULTS_FILE_FLAG,
    TEST_CONTAINER_FLAG,
    WINDOWS_EXIT_SUFFIX,
    WINDOWS_SHELL_PREFIX,
)
from mstest_runner.models.invocation_config import InvocationConfig
from mstest_runner.utils.macro import collapse_whitespace, replace_macro, tokenize

# Only ASCII blanks separate test files; other whitespace belongs to the name
_TEST_FILE_SEPARATOR_RE = re.compile(r"[ \t\r\n]+")


class CommandLine:
    """Ordered list of command tokens."""

    def __init__(self, *args: str) -> None:
        self._args: list[str] = list(args)

    def add(self, *args: str) -> "CommandLine":
        self._args.extend(args)
        return self

    def add_tokenized(self, text: Optional[str]) -> "CommandLine":
        """Split ``text`` into arguments (quotes respected) and append them."""
        self._args.extend(tokenize(text))
        return self

    def prepend(self, *args: str) -> "CommandLine":
        self._args[:0] = args
        return self

    def to_list(self) -> list[str]:
        return list(self._args)

    def to_string_with_quote(self) -> str:
        """Render for the build log; arguments with whitespace are double quoted."""
        return " ".join(
            f'"{a}"' if (not a or any(c.isspace() for c in a)) else a
            for a in self._args
        )

    def __iter__(self) -> Iterator[str]:
        return iter(self._args)

    def __len__(self) -> int:
        return len(self._args)

    def __repr__(self) -> str:
        return f"CommandLine({self._args!r})"


def expand_build_text(text: str, env: Mapping[str, str],
                      build_variables: Mapping[str, str]) -> str:
    """Expand against the build environment, then against build variables."""
    return replace_macro(replace_macro(text, env), build_variables)


def normalize_extra_args(raw: Optional[str], env: Mapping[str, str],
                         build_variables: Mapping[str, str]) -> str:
    """Collapse tab/newline runs to single spaces and expand variables."""
    return expand_build_text(collapse_whitespace(raw or ""), env, build_variables)


def expand_test_files(test_files: str, env: Mapping[str, str],
                      build_variables: Mapping[str, str]) -> list[str]:
    """Split the test file list and expand each entry; empty results are dropped."""
    entries = _TEST_FILE_SEPARATOR_RE.split(test_files)
    expanded = (expand_build_text(entry, env, build_variables) for entry in entries)
    return [entry for entry in expanded if entry]


def wrap_for_windows(command: CommandLine) -> CommandLine:
    """Run through cmd.exe so the interpreter exits with MSTest's exit code."""
    return command.prepend(*WINDOWS_SHELL_PREFIX).add(*WINDOWS_EXIT_SUFFIX)


def build_command(
    config: InvocationConfig,
    exec_path: Optional[str] = None,
    default_args: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    build_variables: Optional[Mapping[str, str]] = None,
    is_unix: bool = True,
) -> CommandLine:
    """
    Build the MSTest command line for ``config``.

    Parameters
    ----------
    config : InvocationConfig
        Build-step settings.
    exec_path : str | None
        Resolved installation path. None means mstest.exe on the search path.
    default_args : str | None
        The installation's default arguments.
    env : Mapping[str, str] | None
        Build environment, first expansion pass.
    build_variables : Mapping[str, str] | None
        Build variables, second expansion pass.
    is_unix : bool
        False wraps the command for cmd.exe.

    Returns
    -------
    CommandLine

    Raises
    ------
    ValueError
        If result_file is blank, or test_files yields no entry after expansion.
    """
    env = env or {}
    build_variables = build_variables or {}

    if not config.result_file or not config.result_file.strip():
        raise ValueError("Result file name was not specified")
    if not config.test_files or not config.test_files.strip():
        raise ValueError("No test files are specified")

    command = CommandLine(exec_path or DEFAULT_EXECUTABLE)
    if exec_path and default_args is not None:
        command.add_tokenized(default_args)

    command.add(RESULTS_FILE_FLAG + config.result_file)
    command.add(NO_ISOLATION_FLAG)

    extra_args = normalize_extra_args(config.cmd_line_args, env, build_variables)
    if extra_args.strip():
        command.add_tokenized(extra_args)

    if config.categories and config.categories.strip():
        command.add(CATEGORY_FLAG + config.categories.strip())

    test_files = expand_test_files(config.test_files, env, build_variables)
    if not test_files:
        raise ValueError("No test files are specified")
    for test_file in test_files:
        command.add(TEST_CONTAINER_FLAG + test_file)

    if not is_unix:
        wrap_for_windows(command)
    return command

