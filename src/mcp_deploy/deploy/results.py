"""Result models returned by the command sequences in ``workflow``.

A command either raises an ``McpDeployError`` or returns a
``CommandResult``. ``message`` and ``notes`` are progress output (stdout);
``warnings`` are diagnostics (stderr).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class CommandStatus(str, Enum):
    """Outcome of a successful command."""

    OK = "ok"  # Changes applied / tool invoked
    NOOP = "noop"  # Nothing to do; exit 0


class CommandResult(BaseModel):
    """Outcome of one sub-command."""

    command: str
    status: CommandStatus = CommandStatus.OK
    targets: list[str] = Field(default_factory=list)
    message: str = ""
    warnings: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status == CommandStatus.OK


class ServerInfo(BaseModel):
    """One row of ``mcp list``."""

    name: str
    managed: bool = True
    in_manifest: bool = False
    source_present: bool = False
    build_context: str | None = None


__all__ = ["CommandResult", "CommandStatus", "ServerInfo"]
