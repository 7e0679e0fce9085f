"""
Shared pytest fixtures for mcp-deploy tests.

This module provides:
- An isolated workspace rooted in ``tmp_path``
- ``RecordingShell``, a stand-in for ``ShellExecutor`` that records every
  git / docker-compose invocation and fails on demand
- Environment isolation for ``MCP_*`` settings

No test runs the real ``git`` or ``docker-compose``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import structlog

# Ensure mcp_deploy is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mcp_deploy.core.errors import CommandError
from mcp_deploy.core.settings import DeploySettings, WorkspaceConfig
from mcp_deploy.core.shell import CommandOutput
from mcp_deploy.deploy.workflow import ServerDeployment


# =============================================================================
# Fake process runner
# =============================================================================


@dataclass
class ShellCall:
    program: str
    args: list[str]
    cwd: Path

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


class RecordingShell:
    """Records calls instead of running them.

    ``git init`` creates the ``.git`` directory so that later calls see an
    initialized mirror, like the real tool would.
    """

    def __init__(self) -> None:
        self.calls: list[ShellCall] = []
        self._failures: list[tuple[list[str], int | None, str]] = []

    def fail_on(self, *argv_prefix: str, exit_code: int | None = 1, stderr: str = "boom") -> None:
        self._failures.append((list(argv_prefix), exit_code, stderr))

    def run(self, program: str, args: list[str], cwd: Path | str) -> CommandOutput:
        call = ShellCall(program, list(args), Path(cwd))
        self.calls.append(call)
        for prefix, exit_code, stderr in self._failures:
            if call.argv[: len(prefix)] == prefix:
                raise CommandError(program, args, exit_code=exit_code, stderr=stderr, cwd=cwd)
        if program == "git" and list(args) == ["init"]:
            (Path(cwd) / ".git").mkdir(parents=True, exist_ok=True)
        return CommandOutput(stdout="", stderr="")

    @property
    def commands(self) -> list[list[str]]:
        return [c.argv for c in self.calls]


def fake_subprocess_run(calls: list[list[str]], fail: dict[str, tuple[int, str]] | None = None):
    """Build a ``subprocess.run`` replacement for CLI tests.

    ``fail`` maps a space-joined argv prefix (e.g. ``"git fetch"``) to the
    exit code and stderr to return for matching commands.
    """

    def _run(cmd: list[str], cwd: str | None = None, **kwargs: Any) -> subprocess.CompletedProcess:
        calls.append(list(cmd))
        joined = " ".join(cmd)
        for prefix, (code, stderr) in (fail or {}).items():
            if joined.startswith(prefix):
                return subprocess.CompletedProcess(cmd, code, stdout="", stderr=stderr)
        if cmd[:2] == ["git", "init"] and cwd:
            (Path(cwd) / ".git").mkdir(parents=True, exist_ok=True)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    return _run


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Drop MCP_* variables and keep a stray .env from leaking in."""
    for key in list(os.environ):
        if key.startswith("MCP_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


# =============================================================================
# Workspace fixtures
# =============================================================================


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceConfig:
    return WorkspaceConfig.from_root(tmp_path)


@pytest.fixture
def settings(tmp_path: Path) -> DeploySettings:
    return DeploySettings(workspace_root=tmp_path)


@pytest.fixture
def shell() -> RecordingShell:
    return RecordingShell()


@pytest.fixture
def fake_run():
    """``fake_subprocess_run`` factory, for patching ``subprocess.run``."""
    return fake_subprocess_run


@pytest.fixture
def progress() -> list[str]:
    return []


@pytest.fixture
def deployment(
    settings: DeploySettings,
    workspace: WorkspaceConfig,
    shell: RecordingShell,
    progress: list[str],
) -> ServerDeployment:
    return ServerDeployment(settings, workspace, shell=shell, on_progress=progress.append)


@pytest.fixture
def write_state(workspace: WorkspaceConfig):
    """Write ``mcp-state.json`` with the given server names."""

    def _write(*names: str) -> None:
        import json

        workspace.state_file.write_text(json.dumps({"addedServers": list(names)}))

    return _write


@pytest.fixture
def write_compose(workspace: WorkspaceConfig):
    """Write ``docker-compose.yml`` with a minimal service per name."""

    def _write(*names: str) -> None:
        import yaml

        services = {
            name: {"build": {"context": f"mcp-servers/src/{name}"}, "restart": "unless-stopped"}
            for name in names
        }
        workspace.compose_file.write_text(yaml.safe_dump({"version": "3.8", "services": services}))

    return _write
