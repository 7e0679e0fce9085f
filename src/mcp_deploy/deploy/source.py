"""Sparse-checkout mirror of the upstream MCP servers repository.

The mirror lives in ``<workspace>/mcp-servers`` and is configured once:
``git init``, the upstream registered under a fixed remote name, and
``core.sparseCheckout`` enabled with an empty pattern file. After that it
is only ever fetched and checked out, never re-initialized or deleted.

The pattern file (``.git/info/sparse-checkout``) is derived state: it is
regenerated in full from the managed server list on every add/remove,
one ``src/<name>/`` line per server, in list order.

Known gap: an existing mirror is not re-validated. If ``.git`` already
exists, the remote URL and sparse-checkout flag are assumed correct.
"""

from __future__ import annotations

from collections.abc import Iterable

from mcp_deploy.core.errors import StorageError
from mcp_deploy.core.logging import get_logger
from mcp_deploy.core.settings import DeploySettings, WorkspaceConfig
from mcp_deploy.core.shell import ShellExecutor

logger = get_logger(__name__)


def sparse_checkout_patterns(names: Iterable[str]) -> str:
    """Pattern file content for ``names``: one ``src/<name>/`` line each."""
    return "".join(f"src/{name}/\n" for name in names)


class SourceFetcher:
    """Manages the local sparse-checkout mirror via the ``git`` CLI.

    Parameters
    ----------
    workspace
        Resolved workspace paths.
    settings
        Upstream URL, remote name, branch and git command.
    shell
        Process runner; injectable for tests.
    """

    def __init__(
        self,
        workspace: WorkspaceConfig,
        settings: DeploySettings,
        shell: ShellExecutor | None = None,
    ) -> None:
        self.workspace = workspace
        self.settings = settings
        self.shell = shell or ShellExecutor()

    def _git(self, *args: str) -> None:
        self.shell.run(self.settings.git_command, list(args), self.workspace.servers_dir)

    def is_initialized(self) -> bool:
        return self.workspace.git_dir.exists()

    def ensure_initialized(self) -> bool:
        """Create and configure the mirror if needed.

        Returns True when the one-time setup ran, False when the mirror
        already existed.
        """
        servers_dir = self.workspace.servers_dir
        if not servers_dir.exists():
            logger.info("source.mkdir", path=str(servers_dir))
            try:
                servers_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(
                    f"Could not create directory {servers_dir}: {exc}",
                    path=servers_dir,
                    cause=exc,
                ) from exc

        if self.is_initialized():
            logger.debug("source.already_initialized", path=str(servers_dir))
            return False

        logger.info("source.init", path=str(servers_dir), remote=self.settings.remote_name)
        self._git("init")
        self._git("remote", "add", self.settings.remote_name, self.settings.repo_url)
        self._git("config", "core.sparseCheckout", "true")
        self._write_patterns("")
        return True

    def update_sparse_checkout(self, names: Iterable[str]) -> None:
        """Regenerate the pattern file from the complete server list."""
        names = list(names)
        self._write_patterns(sparse_checkout_patterns(names))
        logger.info("source.sparse_checkout_updated", servers=names)

    def fetch_latest(self) -> None:
        """Fetch the configured branch and check it out.

        Raises:
            CommandError: fetch or checkout failed (network, renamed
                branch, local modifications).
        """
        remote, branch = self.settings.remote_name, self.settings.branch
        logger.info("source.fetch", remote=remote, branch=branch)
        self._git("fetch", remote, branch)
        self._git("checkout", branch)

    def _write_patterns(self, content: str) -> None:
        path = self.workspace.sparse_checkout_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(
                f"Error writing sparse-checkout file {path}: {exc}",
                path=path,
                cause=exc,
            ) from exc


__all__ = ["SourceFetcher", "sparse_checkout_patterns"]
