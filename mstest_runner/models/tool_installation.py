"""
Tool Installation Model
=======================
Pydantic model for a named MSTest installation.

Fields:
    name         : unique logical identifier used by build steps
    home         : path to mstest.exe; may contain $VAR / ${VAR} / %VAR%
    default_args : whitespace separated arguments always passed to MSTest

Instances are frozen. Specialising for a node or an environment returns a
new instance so registry entries are never changed by a build.
"""
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from mstest_runner.utils.macro import expand_environment

if TYPE_CHECKING:
    from mstest_runner.executor.nodes import Node
    from mstest_runner.utils.build_listener import BuildListener


class ToolInstallation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    home: str
    default_args: Optional[str] = None

    @field_validator("default_args")
    @classmethod
    def empty_args_are_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def for_node(self, node: "Node", listener: "BuildListener") -> "ToolInstallation":
        """Copy with ``home`` translated to the path seen from ``node``."""
        translated = node.translate_path(self.home)
        if translated != self.home:
            listener.println(f"Translated {self.name} home for {node.name}: {translated}")
        return ToolInstallation(name=self.name, home=translated, default_args=self.default_args)

    def for_environment(self, env: dict[str, str]) -> "ToolInstallation":
        """Copy with variable references in ``home`` expanded against ``env``."""
        return ToolInstallation(
            name=self.name,
            home=expand_environment(self.home, env),
            default_args=self.default_args,
        )
