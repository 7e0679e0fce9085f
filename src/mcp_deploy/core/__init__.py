"""Core primitives: errors, logging, settings and process execution."""

from mcp_deploy.core.errors import (
    CommandError,
    ConfigError,
    ErrorCategory,
    ManifestDecodeError,
    McpDeployError,
    ParseError,
    PreconditionError,
    StorageError,
    ValidationError,
)
from mcp_deploy.core.settings import DeploySettings, WorkspaceConfig
from mcp_deploy.core.shell import CommandOutput, ShellExecutor

__all__ = [
    "CommandError",
    "CommandOutput",
    "ConfigError",
    "DeploySettings",
    "ErrorCategory",
    "ManifestDecodeError",
    "McpDeployError",
    "ParseError",
    "PreconditionError",
    "ShellExecutor",
    "StorageError",
    "ValidationError",
    "WorkspaceConfig",
]
