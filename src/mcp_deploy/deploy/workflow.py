"""Command sequences for managing MCP server deployments.

Three artifacts describe a deployment and are kept in step by these
sequences:

    mcp-state.json                  managed server names (authoritative)
    mcp-servers/.git/info/sparse-checkout   derived: src/<name>/ per server
    docker-compose.yml              one service per server

Each command is a fixed, linear list of steps that stops at the first
failure. Completed steps are not rolled back, and the three files are
written separately, so an interrupted command can leave them out of step;
re-running the command converges them.

    add     validate → already managed? (noop) → init mirror → sparse list
            → fetch → compose entry → write compose → write state
    remove  validate → managed? (error) → init mirror → sparse list
            → drop compose entry → write compose → write state
    update  any managed? (noop) → init mirror → fetch
    start   compose file? → managed ∩ compose → ``compose up -d``
    stop    compose file? → compose (∩ managed) → ``compose stop``

Related Modules:
    - :mod:`mcp_deploy.deploy.state`: managed server list
    - :mod:`mcp_deploy.deploy.compose`: compose manifest
    - :mod:`mcp_deploy.deploy.source`: sparse-checkout mirror
"""

from __future__ import annotations

from collections.abc import Callable

from mcp_deploy.core.errors import PreconditionError
from mcp_deploy.core.logging import get_logger
from mcp_deploy.core.settings import DeploySettings, WorkspaceConfig
from mcp_deploy.core.shell import CommandOutput, ShellExecutor
from mcp_deploy.deploy.compose import ComposeStore
from mcp_deploy.deploy.results import CommandResult, CommandStatus, ServerInfo
from mcp_deploy.deploy.source import SourceFetcher
from mcp_deploy.deploy.state import StateStore, validate_server_name

logger = get_logger(__name__)

ProgressCallback = Callable[[str], None]


class ServerDeployment:
    """Runs the add/remove/update/start/stop sequences against a workspace.

    Parameters
    ----------
    settings
        Upstream repository, tool commands and passthrough variables.
    workspace
        Resolved paths; defaults to ``settings.workspace()``.
    shell
        Process runner shared by git and docker-compose calls.
    on_progress
        Receives progress lines while a command runs.

    Example::

        deployment = ServerDeployment(DeploySettings())
        result = deployment.add("github")
        print(result.message)
    """

    def __init__(
        self,
        settings: DeploySettings,
        workspace: WorkspaceConfig | None = None,
        shell: ShellExecutor | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.settings = settings
        self.workspace = workspace or settings.workspace()
        self.shell = shell or ShellExecutor()
        self.state_store = StateStore(self.workspace)
        self.compose_store = ComposeStore(self.workspace, settings.passthrough_env)
        self.source = SourceFetcher(self.workspace, settings, self.shell)
        self._on_progress = on_progress

    def _progress(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(message)

    def _compose(self, *args: str) -> CommandOutput:
        program, *prefix = self.settings.compose_argv
        return self.shell.run(program, [*prefix, *args], self.workspace.workspace_root)

    @property
    def _compose_path(self) -> str:
        return str(self.workspace.compose_file)

    # ------------------------------------------------------------------
    # add / remove
    # ------------------------------------------------------------------

    def add(self, name: str) -> CommandResult:
        """Start managing ``name``: fetch its source and add its service."""
        name = validate_server_name(name)
        log = logger.bind(command="add", server=name)

        state = self.state_store.read()
        if name in state:
            log.info("add.already_managed")
            return CommandResult(
                command="add",
                status=CommandStatus.NOOP,
                targets=[name],
                warnings=[
                    f"Server '{name}' is already managed. If you want to update, use 'mcp update'."
                ],
            )

        warnings: list[str] = []
        self.source.ensure_initialized()

        updated = state.with_server(name)
        self.source.update_sparse_checkout(updated.added_servers)

        self._progress("Pulling source code (this might take a moment)...")
        self.source.fetch_latest()
        self._progress("Source code pulled.")

        manifest = self.compose_store.read()
        if self.compose_store.add_service(manifest, name):
            warnings.append(
                f"Service '{name}' already exists in {self._compose_path}. Overwriting."
            )
        self.compose_store.write(manifest)

        self.state_store.write(updated)
        log.info("add.done", servers=updated.added_servers)

        return CommandResult(
            command="add",
            targets=[name],
            message=f"Server '{name}' added successfully.",
            warnings=warnings,
            notes=[f"You can now start it using: mcp start {name}"],
        )

    def remove(self, name: str) -> CommandResult:
        """Stop managing ``name``: drop it from the sparse list and manifest."""
        name = validate_server_name(name)
        log = logger.bind(command="remove", server=name)

        state = self.state_store.read()
        if name not in state:
            raise PreconditionError(f"Server '{name}' is not currently managed.").with_context(
                command="remove", server=name
            )

        warnings: list[str] = []
        updated = state.without_server(name)

        self.source.ensure_initialized()
        self.source.update_sparse_checkout(updated.added_servers)
        self._progress("Updated sparse checkout configuration.")

        manifest = self.compose_store.read()
        if not self.compose_store.remove_service(manifest, name):
            warnings.append(f"Service '{name}' not found in {self._compose_path}.")
        self.compose_store.write(manifest)

        self.state_store.write(updated)
        log.info("remove.done", servers=updated.added_servers)

        return CommandResult(
            command="remove",
            targets=[name],
            message=f"Server '{name}' removed successfully.",
            warnings=warnings,
            notes=[
                "Note: Source code files might still exist in the mcp-servers directory "
                "but will not be updated.",
                f"Run 'mcp stop {name}' first if the container is still running.",
            ],
        )

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    def update(self) -> CommandResult:
        """Fetch the latest upstream source for every managed server."""
        state = self.state_store.read()
        if not state.added_servers:
            return CommandResult(
                command="update",
                status=CommandStatus.NOOP,
                message="No servers are currently managed. Nothing to update.",
            )

        self._progress(f"Updating servers: {', '.join(state.added_servers)}")
        self.source.ensure_initialized()
        self.source.fetch_latest()
        logger.info("update.done", servers=state.added_servers)

        return CommandResult(
            command="update",
            targets=list(state.added_servers),
            message="All managed servers updated successfully from the repository.",
            notes=[
                "Note: If servers were running, rebuild and restart them:",
                f"  mcp stop && {self.settings.compose_command} build && mcp start",
            ],
        )

    # ------------------------------------------------------------------
    # start / stop
    # ------------------------------------------------------------------

    def start(self, name: str | None = None) -> CommandResult:
        """``compose up -d`` for ``name``, or for every managed server."""
        if name is not None:
            name = validate_server_name(name)

        if not self.compose_store.exists():
            raise PreconditionError(
                f"Docker Compose file not found at {self._compose_path}. Cannot start servers."
            ).with_context(command="start", path=self._compose_path)

        state = self.state_store.read()
        manifest = self.compose_store.read()
        warnings: list[str] = []

        if name is not None:
            if name not in state:
                raise PreconditionError(
                    f"Server '{name}' is not managed by mcp. Use 'mcp add {name}' first."
                ).with_context(command="start", server=name)
            if not manifest.has_service(name):
                raise PreconditionError(
                    f"Service '{name}' not found in {self._compose_path}. Try adding it again."
                ).with_context(command="start", server=name)
            targets = [name]
        else:
            if not state.added_servers:
                return CommandResult(
                    command="start",
                    status=CommandStatus.NOOP,
                    message="No servers are currently managed. Nothing to start.",
                )
            targets = []
            for server in state.added_servers:
                if manifest.has_service(server):
                    targets.append(server)
                else:
                    warnings.append(
                        f"Managed server '{server}' not found in {self._compose_path}. Skipping start."
                    )
            if not targets:
                return CommandResult(
                    command="start",
                    status=CommandStatus.NOOP,
                    message="No managed servers found in Docker Compose file. Nothing to start.",
                    warnings=warnings,
                )

        self._progress(f"Starting Docker Compose service(s): {', '.join(targets)}")
        self._compose("up", "-d", *targets)
        logger.info("start.done", services=targets)

        return CommandResult(
            command="start",
            targets=targets,
            message=f"Started service(s): {', '.join(targets)}",
            warnings=warnings,
        )

    def stop(self, name: str | None = None) -> CommandResult:
        """``compose stop`` for ``name``, or for every managed server.

        A named server only needs a compose entry; it does not have to be
        in the managed list.
        """
        if name is not None:
            name = validate_server_name(name)

        if not self.compose_store.exists():
            missing = f"Docker Compose file not found at {self._compose_path}."
            if name is not None:
                raise PreconditionError(
                    f"{missing} Cannot stop server '{name}' without it."
                ).with_context(command="stop", server=name)
            return CommandResult(
                command="stop",
                status=CommandStatus.NOOP,
                message="Cannot determine which services to stop.",
                warnings=[f"{missing} Cannot guarantee stopping specific services."],
            )

        state = self.state_store.read()
        manifest = self.compose_store.read()

        if name is not None:
            if not manifest.has_service(name):
                raise PreconditionError(
                    f"Service '{name}' not found in {self._compose_path}. Cannot stop it."
                ).with_context(command="stop", server=name)
            targets = [name]
        else:
            # Orphaned compose entries are left alone.
            if not state.added_servers:
                return CommandResult(
                    command="stop",
                    status=CommandStatus.NOOP,
                    message="No managed servers found in state. Stopping nothing.",
                )
            targets = [s for s in state.added_servers if manifest.has_service(s)]
            if not targets:
                return CommandResult(
                    command="stop",
                    status=CommandStatus.NOOP,
                    message="No managed servers found in Docker Compose file. Nothing to stop.",
                )

        self._progress(f"Stopping Docker Compose service(s): {', '.join(targets)}")
        self._compose("stop", *targets)
        logger.info("stop.done", services=targets)

        return CommandResult(
            command="stop",
            targets=targets,
            message=f"Stopped service(s): {', '.join(targets)}",
        )

    # ------------------------------------------------------------------
    # list
    # ------------------------------------------------------------------

    def list_servers(self) -> list[ServerInfo]:
        """Managed servers, plus compose entries this tool generated but no
        longer tracks. Read-only.
        """
        state = self.state_store.read()
        manifest = self.compose_store.read()

        rows: list[ServerInfo] = []
        for server in state.added_servers:
            service = manifest.services.get(server)
            rows.append(
                ServerInfo(
                    name=server,
                    in_manifest=service is not None,
                    source_present=self.workspace.server_source_dir(server).is_dir(),
                    build_context=_build_context(service),
                )
            )

        for service_name, service in manifest.services.items():
            if service_name in state:
                continue
            context = _build_context(service)
            if context != self.compose_store.build_context(service_name):
                continue
            rows.append(
                ServerInfo(
                    name=service_name,
                    managed=False,
                    in_manifest=True,
                    source_present=self.workspace.server_source_dir(service_name).is_dir(),
                    build_context=context,
                )
            )
        return rows


def _build_context(service: dict | None) -> str | None:
    if not service:
        return None
    build = service.get("build")
    if isinstance(build, dict):
        return build.get("context")
    if isinstance(build, str):
        return build
    return None


__all__ = ["ProgressCallback", "ServerDeployment"]
