"""Docker Compose manifest for managed MCP servers.

Each managed server gets one service in ``docker-compose.yml``, generated
from a fixed template:

    services:
      github:
        build:
          context: mcp-servers/src/github
        restart: unless-stopped
        stdin_open: true
        tty: true
        environment:
        - GITHUB_PERSONAL_ACCESS_TOKEN=${GITHUB_PERSONAL_ACCESS_TOKEN}

``stdin_open`` and ``tty`` are required by the MCP stdio transport. The
environment entries are ``${NAME}`` references that docker-compose
resolves when it runs; no secret value is ever written to the file.

The whole document is loaded, mutated in memory and rewritten on every
change. Services and top-level keys the tool did not create are kept as
they are.

Read policy: a missing file yields an empty manifest; a file that exists
but does not parse raises ``ManifestDecodeError`` and is never rewritten.

Related Modules:
    - :mod:`mcp_deploy.deploy.source`: materializes the build contexts
    - :mod:`mcp_deploy.deploy.workflow`: add/remove/start/stop sequences
"""

from __future__ import annotations

import os
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator
from pydantic import ValidationError as PydanticValidationError

from mcp_deploy.core.errors import DecodePolicy, ManifestDecodeError, StorageError
from mcp_deploy.core.logging import get_logger
from mcp_deploy.core.settings import WorkspaceConfig

logger = get_logger(__name__)

DEFAULT_COMPOSE_VERSION = "3.8"
RESTART_POLICY = "unless-stopped"


def _yaml_dumps(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


class BuildSpec(BaseModel):
    """``build:`` section of a service."""

    context: str


class ServiceDefinition(BaseModel):
    """Template for a managed server's compose service."""

    build: BuildSpec
    restart: str = RESTART_POLICY
    stdin_open: bool = True
    tty: bool = True
    environment: list[str] = Field(default_factory=list)

    def to_compose(self) -> dict[str, Any]:
        return self.model_dump()


class ComposeManifest(BaseModel):
    """A docker-compose document.

    ``services`` maps service names to their raw definitions. Unknown
    top-level keys (``volumes``, ``networks``, ...) are preserved.
    """

    model_config = ConfigDict(extra="allow")

    version: Any = None
    services: dict[str, dict[str, Any]] = Field(default_factory=dict)

    # Top-level key order of the loaded document
    _key_order: list[str] = PrivateAttr(default_factory=list)

    @field_validator("services", mode="before")
    @classmethod
    def _null_services(cls, v: Any) -> Any:
        return {} if v is None else v

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> ComposeManifest:
        manifest = cls.model_validate(raw)
        manifest._key_order = list(raw)
        return manifest

    def has_service(self, name: str) -> bool:
        return name in self.services

    def to_compose(self) -> dict[str, Any]:
        """Plain mapping for YAML output, in the loaded document's key order."""
        data = self.model_dump()
        if data.get("version") is None:
            data.pop("version", None)
        ordered = {key: data.pop(key) for key in self._key_order if key in data}
        ordered.update(data)
        return ordered


def env_reference(name: str) -> str:
    """``NAME=${NAME}``: resolved by docker-compose at run time."""
    return f"{name}=${{{name}}}"


class ComposeStore:
    """Loads, edits and saves the compose manifest.

    Parameters
    ----------
    workspace
        Resolved workspace paths.
    passthrough_env
        Environment variable names referenced by every generated service.
    """

    decode_policy = DecodePolicy.RAISE

    def __init__(
        self,
        workspace: WorkspaceConfig,
        passthrough_env: list[str] | None = None,
    ) -> None:
        self.workspace = workspace
        self.path = workspace.compose_file
        self.passthrough_env = (
            list(passthrough_env) if passthrough_env is not None else ["GITHUB_PERSONAL_ACCESS_TOKEN"]
        )

    def exists(self) -> bool:
        return self.path.exists()

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def read(self) -> ComposeManifest:
        """Load the manifest.

        Raises:
            ManifestDecodeError: the file exists but is not a compose mapping.
        """
        if not self.path.exists():
            logger.debug("compose.missing", path=str(self.path))
            return ComposeManifest(version=DEFAULT_COMPOSE_VERSION)

        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ManifestDecodeError(self.path, str(exc), cause=exc) from exc

        if not isinstance(raw, dict):
            raise ManifestDecodeError(self.path, "Invalid YAML content: root is not a mapping.")

        try:
            manifest = ComposeManifest.from_document(raw)
        except PydanticValidationError as exc:
            raise ManifestDecodeError(self.path, f"Invalid compose structure: {exc}", cause=exc) from exc

        logger.debug("compose.read", path=str(self.path), services=list(manifest.services))
        return manifest

    def write(self, manifest: ComposeManifest) -> None:
        """Persist the full manifest, replacing prior content."""
        content = _yaml_dumps(manifest.to_compose())
        try:
            self.path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(
                f"Error writing Docker Compose file {self.path}: {exc}",
                path=self.path,
                cause=exc,
            ) from exc
        logger.debug("compose.written", path=str(self.path), services=list(manifest.services))

    # ------------------------------------------------------------------
    # Service entries
    # ------------------------------------------------------------------

    def build_context(self, name: str) -> str:
        """Server source directory, relative to the compose file's directory."""
        source = self.workspace.server_source_dir(name)
        relative = os.path.relpath(source, self.path.parent)
        return relative.replace(os.sep, "/")

    def service_definition(self, name: str) -> ServiceDefinition:
        return ServiceDefinition(
            build=BuildSpec(context=self.build_context(name)),
            environment=[env_reference(var) for var in self.passthrough_env],
        )

    def add_service(self, manifest: ComposeManifest, name: str) -> bool:
        """Set the service for ``name`` from the template.

        Returns True when an existing definition was overwritten.
        """
        replaced = name in manifest.services
        if replaced:
            logger.info("compose.service_overwritten", service=name, path=str(self.path))
        manifest.services[name] = self.service_definition(name).to_compose()
        logger.info("compose.service_added", service=name)
        return replaced

    def remove_service(self, manifest: ComposeManifest, name: str) -> bool:
        """Delete the service for ``name``.

        Returns False when there was nothing to remove.
        """
        if name not in manifest.services:
            logger.info("compose.service_missing", service=name, path=str(self.path))
            return False
        del manifest.services[name]
        logger.info("compose.service_removed", service=name)
        return True


__all__ = [
    "BuildSpec",
    "ComposeManifest",
    "ComposeStore",
    "DEFAULT_COMPOSE_VERSION",
    "RESTART_POLICY",
    "ServiceDefinition",
    "env_reference",
]
