"""
CLI layer for mcp-deploy.

A Typer application whose commands delegate to
``mcp_deploy.deploy.workflow.ServerDeployment``. This package handles
only terminal concerns: argument parsing, coloured output and exit codes.

Entry point::

    mcp --help
"""

from mcp_deploy.cli.app import app

__all__ = ["app"]
