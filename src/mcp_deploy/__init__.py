"""mcp-deploy: manage locally deployed MCP server containers.

Server sources are fetched on demand from the upstream MCP servers
repository with a sparse checkout, and each managed server gets a service
in a generated ``docker-compose.yml``.

Entry point::

    mcp --help
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
