"""
n8n MCP Manager - manage workflows and executions on many n8n instances
through a single Model Context Protocol tool surface.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("n8n-mcp-manager")
except PackageNotFoundError:
    __version__ = "unknown"

from .errors import (
    InstanceNotFoundError,
    N8NAPIError,
    N8NMCPError,
    UnknownToolError,
)
from .instance_config import Instance, InstanceRegistry, load_instances, validate_instances
from .n8n_client import N8NClient
from .tool_handlers import N8NToolHandlers, ToolResult

__all__ = [
    "Instance",
    "InstanceNotFoundError",
    "InstanceRegistry",
    "N8NAPIError",
    "N8NClient",
    "N8NMCPError",
    "N8NToolHandlers",
    "ToolResult",
    "UnknownToolError",
    "load_instances",
    "validate_instances",
]
