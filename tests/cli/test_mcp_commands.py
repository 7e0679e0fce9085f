"""Tests for the ``mcp`` CLI commands.

Uses typer.testing.CliRunner with ``subprocess.run`` patched, so the
whole stack (settings, stores, shell executor, rendering) runs for real
against ``tmp_path`` without invoking git or docker-compose.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from mcp_deploy import __version__
from mcp_deploy.cli.app import app

runner = CliRunner()


@pytest.fixture
def calls() -> list[list[str]]:
    return []


@pytest.fixture
def invoke(fake_run):
    def _invoke(args: list[str], calls: list[list[str]], fail: dict | None = None):
        with patch("mcp_deploy.core.shell.subprocess.run", side_effect=fake_run(calls, fail)):
            return runner.invoke(app, args)

    return _invoke


class TestAppBasics:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "add" in result.output
        assert "remove" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    @pytest.mark.parametrize("command", ["add", "remove", "update", "start", "stop", "list"])
    def test_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0

    def test_add_requires_name(self, invoke, calls):
        result = invoke(["add"], calls)
        assert result.exit_code != 0
        assert calls == []

    def test_bad_log_format(self):
        result = runner.invoke(app, ["--log-format", "xml", "list"])
        assert result.exit_code == 1
        assert "Invalid --log-format" in result.output

    def test_bad_configuration(self, monkeypatch):
        monkeypatch.setenv("MCP_COMPOSE_COMMAND", " ")
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "Invalid MCP_* configuration" in result.output

    def test_unparseable_list_setting(self, monkeypatch):
        monkeypatch.setenv("MCP_PASSTHROUGH_ENV", "GITHUB_PERSONAL_ACCESS_TOKEN,SLACK_TOKEN")
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "Invalid MCP_* configuration" in result.output
        assert "passthrough_env" in result.output

    def test_unknown_log_level(self, monkeypatch):
        monkeypatch.setenv("MCP_LOG_LEVEL", "trace")
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "Invalid MCP_* configuration" in result.output
        assert "log_level" in result.output


class TestAddCommand:
    def test_add(self, tmp_path, invoke, calls):
        result = invoke(["add", "github"], calls)

        assert result.exit_code == 0, result.output
        assert "Attempting to add server: github..." in result.output
        assert "Pulling source code" in result.output
        assert "Server 'github' added successfully." in result.output
        assert "mcp start github" in result.output

        assert calls[0] == ["git", "init"]
        assert calls[-2:] == [["git", "fetch", "mcp-origin", "main"], ["git", "checkout", "main"]]
        assert json.loads((tmp_path / "mcp-state.json").read_text()) == {"addedServers": ["github"]}
        compose = yaml.safe_load((tmp_path / "docker-compose.yml").read_text())
        assert compose["services"]["github"]["build"]["context"] == "mcp-servers/src/github"

    def test_add_twice_is_noop(self, invoke, calls):
        invoke(["add", "github"], calls)
        calls.clear()

        result = invoke(["add", "github"], calls)

        assert result.exit_code == 0
        assert "already managed" in result.output
        assert calls == []

    def test_empty_name(self, invoke, calls):
        result = invoke(["add", ""], calls)
        assert result.exit_code == 1
        assert "Server name cannot be empty." in result.output
        assert calls == []

    def test_fetch_failure_surfaces_git_output(self, invoke, calls):
        result = invoke(
            ["add", "github"],
            calls,
            fail={"git fetch": (128, "fatal: unable to access 'https://github.com/': Could not resolve host")},
        )

        assert result.exit_code == 1
        assert "Error adding server 'github':" in result.output
        assert "Could not resolve host" in result.output

    def test_workspace_from_env(self, tmp_path, monkeypatch, invoke, calls):
        root = tmp_path / "elsewhere"
        root.mkdir()
        monkeypatch.setenv("MCP_WORKSPACE_ROOT", str(root))

        result = invoke(["add", "github"], calls)

        assert result.exit_code == 0, result.output
        assert (root / "mcp-state.json").exists()
        assert not (tmp_path / "mcp-state.json").exists()

    def test_run_from_cli_checkout(self, tmp_path, monkeypatch, invoke, calls):
        cli_dir = tmp_path / "mcp-cli"
        cli_dir.mkdir()
        monkeypatch.chdir(cli_dir)

        result = invoke(["add", "github"], calls)

        assert result.exit_code == 0, result.output
        assert (tmp_path / "mcp-state.json").exists()


class TestRemoveCommand:
    def test_remove(self, tmp_path, invoke, calls):
        invoke(["add", "github"], calls)
        result = invoke(["remove", "github"], calls)

        assert result.exit_code == 0, result.output
        assert "Server 'github' removed successfully." in result.output
        assert "mcp stop github" in result.output
        assert json.loads((tmp_path / "mcp-state.json").read_text()) == {"addedServers": []}

    def test_remove_unmanaged(self, tmp_path, invoke, calls):
        result = invoke(["remove", "github"], calls)

        assert result.exit_code == 1
        assert "Server 'github' is not currently managed." in result.output
        assert not (tmp_path / "mcp-state.json").exists()


class TestUpdateCommand:
    def test_nothing_to_update(self, invoke, calls):
        result = invoke(["update"], calls)
        assert result.exit_code == 0
        assert "Nothing to update" in result.output
        assert calls == []

    def test_update(self, invoke, calls, write_state):
        write_state("github")
        result = invoke(["update"], calls)

        assert result.exit_code == 0, result.output
        assert "updated successfully" in result.output
        assert ["git", "fetch", "mcp-origin", "main"] in calls

    def test_checkout_conflict(self, invoke, calls, write_state):
        write_state("github")
        result = invoke(
            ["update"],
            calls,
            fail={"git checkout": (1, "error: Your local changes would be overwritten by checkout")},
        )
        assert result.exit_code == 1
        assert "Error updating servers:" in result.output
        assert "local changes" in result.output


class TestStartStopCommands:
    def test_start_without_compose_file(self, invoke, calls, write_state):
        write_state("github")
        result = invoke(["start"], calls)
        assert result.exit_code == 1
        assert "Docker Compose file not found" in result.output
        assert calls == []

    def test_start_all(self, invoke, calls, write_state, write_compose):
        write_state("a", "b")
        write_compose("a")

        result = invoke(["start"], calls)

        assert result.exit_code == 0, result.output
        assert calls == [["docker-compose", "up", "-d", "a"]]
        assert "Warning:" in result.output
        assert "'b'" in result.output
        assert "Started service(s): a" in result.output

    def test_start_named_unmanaged(self, invoke, calls, write_state, write_compose):
        write_state("a")
        write_compose("a", "b")
        result = invoke(["start", "b"], calls)
        assert result.exit_code == 1
        assert "mcp add b" in result.output
        assert calls == []

    def test_start_compose_missing_binary(self, invoke, calls, write_state, write_compose):
        write_state("a")
        write_compose("a")

        with patch(
            "mcp_deploy.core.shell.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory", "docker-compose"),
        ):
            result = runner.invoke(app, ["start"])

        assert result.exit_code == 1
        assert "Could not run docker-compose" in result.output
        assert result.output.count("No such file or directory") == 1

    def test_stop_unmanaged_service(self, invoke, calls, write_compose):
        write_compose("x")
        result = invoke(["stop", "x"], calls)
        assert result.exit_code == 0, result.output
        assert calls == [["docker-compose", "stop", "x"]]

    def test_stop_without_compose_file(self, invoke, calls):
        result = invoke(["stop"], calls)
        assert result.exit_code == 0
        assert "Docker Compose file not found" in result.output
        assert calls == []

    def test_stop_named_without_compose_file(self, invoke, calls):
        result = invoke(["stop", "x"], calls)
        assert result.exit_code == 1
        assert "Error stopping server 'x':" in result.output

    def test_stop_nothing_managed(self, invoke, calls, write_compose):
        write_compose("orphan")
        result = invoke(["stop"], calls)
        assert result.exit_code == 0
        assert "Stopping nothing." in result.output
        assert calls == []

    def test_stop_failure(self, invoke, calls, write_state, write_compose):
        write_state("a")
        write_compose("a")
        result = invoke(["stop"], calls, fail={"docker-compose stop": (1, "no such service: a")})
        assert result.exit_code == 1
        assert "no such service: a" in result.output

    def test_malformed_compose(self, tmp_path, invoke, calls, write_state):
        write_state("a")
        (tmp_path / "docker-compose.yml").write_text("services: [broken")
        result = invoke(["start"], calls)
        assert result.exit_code == 1
        assert "Failed to process" in result.output


class TestListCommand:
    def test_empty(self, invoke, calls):
        result = invoke(["list"], calls)
        assert result.exit_code == 0
        assert "No servers are currently managed." in result.output

    def test_table(self, invoke, calls, write_state, write_compose):
        write_state("github")
        write_compose("github")
        result = invoke(["list"], calls)
        assert result.exit_code == 0
        assert "github" in result.output
        assert calls == []

    def test_json(self, invoke, calls, write_state, write_compose):
        write_state("github", "slack")
        write_compose("github")

        result = invoke(["list", "--json"], calls)

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [row["name"] for row in data] == ["github", "slack"]
        assert data[0]["in_manifest"] is True
        assert data[1]["in_manifest"] is False


class TestLogging:
    def test_corrupt_state_warns_on_stderr(self, tmp_path, invoke, calls):
        (tmp_path / "mcp-state.json").write_text("{oops")
        result = invoke(["list"], calls)
        assert result.exit_code == 0
        assert "state.unreadable" in result.output

    def test_verbose_json_logs(self, tmp_path, invoke, calls):
        result = invoke(["--verbose", "--log-format", "json", "add", "github"], calls)
        assert result.exit_code == 0, result.output
        assert '"event": "shell.exec"' in result.output
