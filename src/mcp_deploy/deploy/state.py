"""Persisted list of managed servers (``mcp-state.json``).

The state file holds a single field::

    {"addedServers": ["github", "filesystem"]}

Read failures degrade: a missing file, an unreadable file or a document
that does not decode all yield an empty server list, with a warning
logged for the latter two. Write failures raise ``StorageError``.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from mcp_deploy.core.errors import DecodePolicy, StorageError, ValidationError
from mcp_deploy.core.logging import get_logger
from mcp_deploy.core.settings import WorkspaceConfig

logger = get_logger(__name__)

_FORBIDDEN_NAMES = {".", ".."}


def validate_server_name(name: str | None) -> str:
    """Check a server name given on the command line.

    Names map to ``src/<name>/`` in the upstream repository and to a
    compose service key, so they must be non-blank, must not contain path
    separators and must not look like a command-line flag.
    """
    if name is None or not name.strip():
        raise ValidationError("Server name cannot be empty.", field="name", value=name)
    if "/" in name or "\\" in name or name.strip() in _FORBIDDEN_NAMES:
        raise ValidationError(
            f"Invalid server name '{name}': must be a single directory name under src/.",
            field="name",
            value=name,
        )
    if name.startswith("-"):
        raise ValidationError(
            f"Invalid server name '{name}': must not start with '-'.",
            field="name",
            value=name,
        )
    return name


class DeploymentState(BaseModel):
    """Ordered, duplicate-free list of managed server names."""

    model_config = ConfigDict(populate_by_name=True)

    added_servers: list[str] = Field(default_factory=list, alias="addedServers")

    @field_validator("added_servers")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    def __contains__(self, name: object) -> bool:
        return name in self.added_servers

    def with_server(self, name: str) -> DeploymentState:
        """Return a new state with ``name`` appended (no-op if present)."""
        if name in self.added_servers:
            return self.model_copy(deep=True)
        return DeploymentState(added_servers=[*self.added_servers, name])

    def without_server(self, name: str) -> DeploymentState:
        """Return a new state with ``name`` removed."""
        return DeploymentState(added_servers=[s for s in self.added_servers if s != name])


class StateStore:
    """Reads and writes ``DeploymentState`` as JSON."""

    decode_policy = DecodePolicy.DEGRADE

    def __init__(self, workspace: WorkspaceConfig) -> None:
        self.path = workspace.state_file

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> DeploymentState:
        """Load the state; never raises."""
        if not self.path.exists():
            logger.debug("state.missing", path=str(self.path))
            return DeploymentState()
        try:
            content = self.path.read_text(encoding="utf-8")
            state = DeploymentState.model_validate(json.loads(content))
        except (OSError, ValueError, PydanticValidationError) as exc:
            logger.warning(
                "state.unreadable",
                path=str(self.path),
                error=str(exc),
                policy=self.decode_policy.value,
            )
            return DeploymentState()
        logger.debug("state.read", path=str(self.path), servers=state.added_servers)
        return state

    def write(self, state: DeploymentState) -> None:
        """Persist the full state, replacing prior content."""
        content = json.dumps(state.model_dump(by_alias=True), indent=2)
        try:
            self.path.write_text(content + "\n", encoding="utf-8")
        except OSError as exc:
            raise StorageError(
                f"Error writing state file {self.path}: {exc}",
                path=self.path,
                cause=exc,
            ) from exc
        logger.debug("state.written", path=str(self.path), servers=state.added_servers)


__all__ = ["DeploymentState", "StateStore", "validate_server_name"]
