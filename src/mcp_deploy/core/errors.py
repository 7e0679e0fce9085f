"""
Structured error types for mcp-deploy.

Every failure a sub-command can report is one of the typed errors below.
The CLI layer catches ``McpDeployError``, renders it to stderr and exits
with code 1; anything else is a bug and propagates with a traceback.

Taxonomy:
    ::

        McpDeployError
        ├── ValidationError      bad user input (empty / unsafe server name)
        ├── PreconditionError    server not managed, compose file missing
        ├── StorageError         a persisted artifact could not be written
        ├── ParseError
        │   └── ManifestDecodeError   docker-compose.yml is not valid YAML
        ├── ConfigError          settings could not be resolved
        └── CommandError         git / docker-compose exited non-zero

Read-failure policy differs per store: the state file degrades to an empty
server list (logged, never raised) while a malformed compose file raises
``ManifestDecodeError``. Write failures always raise ``StorageError``.

Usage:
    from mcp_deploy.core.errors import PreconditionError

    if name not in state.added_servers:
        raise PreconditionError(f"Server '{name}' is not currently managed.")

Tags:
    error-handling, exception-hierarchy, cli, mcp-deploy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories, used for rendering and structured logging."""

    VALIDATION = "VALIDATION"  # Bad arguments
    PRECONDITION = "PRECONDITION"  # Workspace not in the required state
    STORAGE = "STORAGE"  # File system writes
    PARSE = "PARSE"  # Malformed persisted documents
    PROCESS = "PROCESS"  # External program failures
    CONFIG = "CONFIG"  # Settings resolution
    INTERNAL = "INTERNAL"


class DecodePolicy(str, Enum):
    """What a store does when its persisted document cannot be decoded."""

    DEGRADE = "degrade"  # Log and fall back to the empty document
    RAISE = "raise"  # Propagate the decode error


@dataclass
class ErrorContext:
    """Structured metadata attached to an error."""

    command: str | None = None
    server: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ["command", "server", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class McpDeployError(Exception):
    """Base exception for all mcp-deploy errors.

    Carries a category, a structured context and an optional chained
    cause. Subclasses set ``default_category``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> McpDeployError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("Write failed").with_context(path=str(state_file))
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# INPUT / WORKSPACE STATE
# =============================================================================


class ValidationError(McpDeployError):
    """Invalid command argument. Reported before any side effect."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class PreconditionError(McpDeployError):
    """The workspace is not in the state the command requires."""

    default_category = ErrorCategory.PRECONDITION


class ConfigError(McpDeployError):
    """Settings could not be resolved into a usable configuration."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# PERSISTENCE
# =============================================================================


class StorageError(McpDeployError):
    """A persisted artifact could not be written."""

    default_category = ErrorCategory.STORAGE

    def __init__(self, message: str, *, path: Path | str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.path = str(path) if path is not None else None
        if self.path is not None:
            self.context.path = self.path


class ParseError(McpDeployError):
    """A persisted document could not be decoded."""

    default_category = ErrorCategory.PARSE


class ManifestDecodeError(ParseError):
    """The compose manifest exists but is not a valid compose document."""

    def __init__(self, path: Path | str, reason: str, **kwargs: Any):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to process {self.path}: {reason}", **kwargs)
        self.context.path = self.path


# =============================================================================
# EXTERNAL PROCESSES
# =============================================================================


class CommandError(McpDeployError):
    """An external program exited non-zero or could not be launched.

    ``exit_code`` is ``None`` when the program never started (not on PATH,
    permission denied, missing working directory).
    """

    default_category = ErrorCategory.PROCESS

    def __init__(
        self,
        program: str,
        args: list[str],
        *,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
        cwd: Path | str | None = None,
        message: str | None = None,
        **kwargs: Any,
    ):
        self.program = program
        self.arguments = list(args)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.cwd = str(cwd) if cwd is not None else None
        if message is None:
            status = f"exit {exit_code}" if exit_code is not None else "could not be started"
            message = f"Command failed ({status}): {self.command_line}"
        super().__init__(message, **kwargs)

    @property
    def command_line(self) -> str:
        return " ".join([self.program, *self.arguments])

    @property
    def output(self) -> str:
        """Captured diagnostic output, stderr first."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["command_line"] = self.command_line
        result["exit_code"] = self.exit_code
        if self.cwd:
            result["cwd"] = self.cwd
        if self.stderr:
            result["stderr"] = self.stderr
        if self.stdout:
            result["stdout"] = self.stdout
        return result


__all__ = [
    "DecodePolicy",
    "ErrorCategory",
    "ErrorContext",
    "McpDeployError",
    "ValidationError",
    "PreconditionError",
    "ConfigError",
    "StorageError",
    "ParseError",
    "ManifestDecodeError",
    "CommandError",
]
