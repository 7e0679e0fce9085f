"""Allow ``python -m mcp_deploy``."""

from mcp_deploy.cli.app import app

if __name__ == "__main__":
    app(prog_name="mcp")
