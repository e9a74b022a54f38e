#!/usr/bin/env python3
"""
Exception types for the n8n MCP Manager
"""

from typing import Optional


class N8NMCPError(Exception):
    """Base class for all manager errors"""


class InstanceNotFoundError(N8NMCPError):
    """Requested instance name has no case-insensitive match"""

    def __init__(self, name: str, available: list):
        self.name = name
        self.available = list(available)
        listing = ", ".join(self.available) or "none"
        super().__init__(f'Instance "{name}" not found. Available instances: {listing}')


class N8NAPIError(N8NMCPError):
    """Non-2xx response from an n8n backend"""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(f"N8N API Error: {message}")


class UnknownToolError(N8NMCPError):
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


# ===== SSE SESSION ROUTING =====

class SessionRoutingError(N8NMCPError):
    """A posted message could not be matched to an SSE session"""
    http_status = 400


class SessionNotFoundError(SessionRoutingError):
    http_status = 404

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Could not find session {session_id}")


class NoActiveSessionError(SessionRoutingError):
    def __init__(self):
        super().__init__("No active SSE connection")


class AmbiguousSessionError(SessionRoutingError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"sessionId is required: {count} SSE sessions are active"
        )
