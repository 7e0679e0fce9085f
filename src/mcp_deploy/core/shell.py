"""External process execution.

Runs ``git`` and ``docker-compose`` via subprocess, synchronously, with
both output streams captured. A non-zero exit or a launch failure raises
``CommandError`` carrying the exit code and the captured output, so the
CLI can surface the tool's own diagnostics verbatim.

No timeout, no retry, no streaming: output is available only after the
process has finished.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from mcp_deploy.core.errors import CommandError
from mcp_deploy.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandOutput:
    """Captured output of a successful command."""

    stdout: str
    stderr: str


class ShellExecutor:
    """Runs external programs in a given working directory.

    Example::

        shell = ShellExecutor()
        out = shell.run("git", ["status", "--short"], workspace.servers_dir)
    """

    def run(self, program: str, args: list[str], cwd: Path | str) -> CommandOutput:
        """Run ``program args...`` in ``cwd`` and wait for it to exit.

        Raises:
            CommandError: the program exited non-zero or could not be started.
        """
        cmd = [program, *args]
        logger.debug("shell.exec", cmd=" ".join(cmd), cwd=str(cwd))
        try:
            proc = subprocess.run(  # noqa: S603
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            logger.info("shell.launch_failed", cmd=" ".join(cmd), error=str(exc))
            raise CommandError(
                program,
                args,
                cwd=cwd,
                message=f"Could not run {program}: {exc}",
                cause=exc,
            ) from exc

        if proc.returncode != 0:
            logger.info(
                "shell.failed",
                cmd=" ".join(cmd),
                exit_code=proc.returncode,
                stderr=proc.stderr.strip(),
            )
            raise CommandError(
                program,
                args,
                exit_code=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
                cwd=cwd,
            )

        logger.debug("shell.done", cmd=" ".join(cmd), stdout=proc.stdout.strip())
        return CommandOutput(stdout=proc.stdout, stderr=proc.stderr)


__all__ = ["CommandOutput", "ShellExecutor"]
