"""Deployment state: managed server list, compose manifest, source mirror.

Key Concepts:
    StateStore: ``mcp-state.json``, the authoritative managed server list.
    ComposeStore: ``docker-compose.yml``, one service per managed server.
    SourceFetcher: sparse-checkout mirror of the upstream repository.
    ServerDeployment: the add/remove/update/start/stop sequences.
"""

from mcp_deploy.deploy.compose import ComposeManifest, ComposeStore, ServiceDefinition
from mcp_deploy.deploy.results import CommandResult, CommandStatus, ServerInfo
from mcp_deploy.deploy.source import SourceFetcher, sparse_checkout_patterns
from mcp_deploy.deploy.state import DeploymentState, StateStore, validate_server_name
from mcp_deploy.deploy.workflow import ServerDeployment

__all__ = [
    "CommandResult",
    "CommandStatus",
    "ComposeManifest",
    "ComposeStore",
    "DeploymentState",
    "ServerDeployment",
    "ServerInfo",
    "ServiceDefinition",
    "SourceFetcher",
    "StateStore",
    "sparse_checkout_patterns",
    "validate_server_name",
]
