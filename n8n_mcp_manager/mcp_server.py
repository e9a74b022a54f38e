#!/usr/bin/env python3
"""
MCP protocol server for the n8n tools

create_mcp_server() builds a low-level mcp Server wired to the tool
handlers. The stdio mode runs one such server for the whole process; the
SSE mode builds a fresh one per session (see session_manager).
"""

import logging
from typing import List

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .tool_handlers import N8NToolHandlers
from .tool_schemas import tool_definitions

logger = logging.getLogger(__name__)

SERVER_NAME = "n8n-mcp-server"
SERVER_VERSION = "1.0.0"


def create_mcp_server(handlers: N8NToolHandlers) -> Server:
    """Build a protocol server that answers tools/list and tools/call"""
    server = Server(SERVER_NAME, version=SERVER_VERSION)
    tools = [types.Tool(**definition) for definition in tool_definitions()]

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return tools

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        # dispatch() already folds every failure into an error result
        result = await handlers.dispatch(request.params.name, request.params.arguments)
        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=result.payload)],
                isError=result.is_error,
            )
        )

    # registered directly so error results keep their payload untouched
    server.request_handlers[types.CallToolRequest] = call_tool
    return server


async def run_stdio_server(handlers: N8NToolHandlers) -> None:
    """Serve a single implicit session over stdin/stdout until EOF"""
    server = create_mcp_server(handlers)
    logger.info("N8N MCP Server running on stdio")
    logger.info(f"Loaded {len(handlers.instances)} N8N instance(s)")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
