"""
Build Listener
==============
Collects the human-readable build log for one build step.

Every line is kept in memory (returned to the caller of the step) and
mirrored to the service log through ``logging``. Process output is mirrored
at DEBUG so the service log is not flooded by test output.
"""
import logging
import traceback
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

_EXCERPT_HEAD_LINES = 30
_EXCERPT_TAIL_LINES = 30


def create_log_excerpt(full_log: str,
                       head: int = _EXCERPT_HEAD_LINES,
                       tail: int = _EXCERPT_TAIL_LINES) -> str:
    """
    Create an abbreviated log showing the first and last N lines.

    Parameters
    ----------
    full_log : str
        The complete build-step output.
    head : int
        Number of lines to keep from the start.
    tail : int
        Number of lines to keep from the end.

    Returns
    -------
    str
        Abbreviated log string. If the log is short enough, returns it as-is.
    """
    lines = full_log.splitlines()
    total = len(lines)

    if total <= head + tail:
        return full_log

    omitted = total - head - tail
    return "\n".join(
        lines[:head]
        + [f"\n... ({omitted} lines omitted) ...\n"]
        + lines[-tail:]
    )


class BuildListener:
    """
    Sink for the build log of a single build step.

    Usage:
        listener = BuildListener()
        listener.println("Executing command: ...")
        listener.fatal_error("Result file name was not specified")
        print(listener.text)
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._lines: list[str] = []
        self._stream = stream

    def println(self, message: str) -> None:
        """Append one line to the build log."""
        self._append(message)
        logger.info(message)

    def fatal_error(self, message: str) -> "BuildListener":
        """
        Record a fatal condition. Returns the listener so a traceback can be
        attached with ``print_exception``.
        """
        self._append(f"FATAL: {message}")
        logger.error(message)
        return self

    def print_exception(self, exc: BaseException) -> None:
        """Append the traceback of ``exc`` to the build log."""
        for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
            for line in chunk.rstrip("\n").splitlines():
                self._append(line)

    def write_output(self, line: str) -> None:
        """Append one line of process output."""
        line = line.rstrip("\r\n")
        self._append(line)
        logger.debug("[process] %s", line)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    def excerpt(self) -> str:
        return create_log_excerpt(self.text)

    def _append(self, line: str) -> None:
        self._lines.append(line)
        if self._stream is not None:
            self._stream.write(line + "\n")
            self._stream.flush()
