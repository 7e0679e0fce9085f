"""Settings and workspace layout for mcp-deploy.

Two layers:

* ``DeploySettings`` (pydantic-settings) holds everything that can be
  overridden from the environment or a ``.env`` file, with the ``MCP_``
  prefix: upstream repository, remote and branch names, external tool
  commands, the environment variables passed through to containers, and
  logging.
* ``WorkspaceConfig`` is the resolved set of paths every component works
  against. It is built once per process (``DeploySettings.workspace()``)
  and handed to each component explicitly; no component looks at the
  current working directory on its own.

Override precedence: CLI options > env vars / ``.env`` > field defaults.

Example::

    settings = DeploySettings()
    workspace = settings.workspace()
    print(workspace.state_file)   # /home/me/project/mcp-state.json
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_deploy.core.logging import LogFormat, LogLevel

DEFAULT_REPO_URL = "https://github.com/modelcontextprotocol/servers.git"
DEFAULT_REMOTE_NAME = "mcp-origin"
DEFAULT_BRANCH = "main"

SERVERS_DIRNAME = "mcp-servers"
STATE_FILENAME = "mcp-state.json"
COMPOSE_FILENAME = "docker-compose.yml"

# Directory name of the tool's own checkout; running from inside it
# targets the parent directory.
CLI_DIRNAME = "mcp-cli"


def resolve_workspace_root(cwd: Path | None = None) -> Path:
    """Resolve the workspace root from the current directory."""
    current = (cwd or Path.cwd()).resolve()
    if current.name == CLI_DIRNAME:
        return current.parent
    return current


class WorkspaceConfig(BaseModel):
    """Resolved workspace paths.

    ``servers_dir`` is the local mirror of the upstream repository,
    ``state_file`` the JSON list of managed servers and ``compose_file``
    the generated docker-compose manifest.
    """

    model_config = ConfigDict(frozen=True)

    workspace_root: Path
    servers_dir: Path
    state_file: Path
    compose_file: Path

    @classmethod
    def from_root(cls, root: Path | str) -> WorkspaceConfig:
        root = Path(root)
        return cls(
            workspace_root=root,
            servers_dir=root / SERVERS_DIRNAME,
            state_file=root / STATE_FILENAME,
            compose_file=root / COMPOSE_FILENAME,
        )

    @property
    def git_dir(self) -> Path:
        return self.servers_dir / ".git"

    @property
    def sparse_checkout_file(self) -> Path:
        return self.git_dir / "info" / "sparse-checkout"

    def server_source_dir(self, name: str) -> Path:
        """Directory the sparse checkout materializes for ``name``."""
        return self.servers_dir / "src" / name


class DeploySettings(BaseSettings):
    """Environment-driven settings (``MCP_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Workspace ────────────────────────────────────────────────
    workspace_root: Path | None = Field(
        default=None,
        description="Workspace root; defaults to the current directory",
    )

    # ── Upstream source ──────────────────────────────────────────
    repo_url: str = DEFAULT_REPO_URL
    remote_name: str = DEFAULT_REMOTE_NAME
    branch: str = DEFAULT_BRANCH

    # ── External tools ───────────────────────────────────────────
    git_command: str = "git"
    compose_command: str = "docker-compose"

    # ── Container environment ────────────────────────────────────
    passthrough_env: list[str] = Field(
        default_factory=lambda: ["GITHUB_PERSONAL_ACCESS_TOKEN"],
        description="Variables referenced as NAME=${NAME} in each service",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: LogLevel = "WARNING"
    log_format: LogFormat = "console"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("log_format", mode="before")
    @classmethod
    def _lower_format(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("compose_command", "git_command")
    @classmethod
    def _non_empty_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command must not be empty")
        return v.strip()

    @property
    def compose_argv(self) -> list[str]:
        """``compose_command`` split into argv, e.g. ``["docker", "compose"]``."""
        return shlex.split(self.compose_command)

    def workspace(self, cwd: Path | None = None) -> WorkspaceConfig:
        root = self.workspace_root or resolve_workspace_root(cwd)
        return WorkspaceConfig.from_root(root.resolve())


__all__ = [
    "CLI_DIRNAME",
    "COMPOSE_FILENAME",
    "DEFAULT_BRANCH",
    "DEFAULT_REMOTE_NAME",
    "DEFAULT_REPO_URL",
    "DeploySettings",
    "SERVERS_DIRNAME",
    "STATE_FILENAME",
    "WorkspaceConfig",
    "resolve_workspace_root",
]
