"""
Build Context
The build-scoped collaborators a build step runs against.
Fields: env, build_variables, workspace, node, listener.
"""
import os
import threading
from dataclasses import dataclass, field

from mstest_runner.executor.nodes import Node, LocalNode
from mstest_runner.utils.build_listener import BuildListener


@dataclass
class BuildContext:
    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))
    build_variables: dict[str, str] = field(default_factory=dict)
    workspace: str = field(default_factory=os.getcwd)   # module root, process cwd
    node: Node = field(default_factory=LocalNode)
    listener: BuildListener = field(default_factory=BuildListener)

    # Filled by the builder once the command is assembled
    command: list[str] = field(default_factory=list)

    @property
    def cancel_event(self) -> threading.Event:
        return self.node.cancel_event

    def cancel(self) -> None:
        """Cancel the build; the blocking step in progress raises BuildInterrupted."""
        self.node.cancel_event.set()
