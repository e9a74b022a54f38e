#!/usr/bin/env python3
"""
n8n MCP Server - Main Entry Point
Serves the n8n management tools over stdio or SSE (HTTP)
"""

import argparse
import asyncio
import functools
import json
import logging
import os
import signal
import sys
from typing import Optional

from aiohttp import web

from n8n_mcp_manager.api_handlers import create_app
from n8n_mcp_manager.instance_config import InstanceRegistry
from n8n_mcp_manager.mcp_server import create_mcp_server, run_stdio_server
from n8n_mcp_manager.n8n_client import N8NClient
from n8n_mcp_manager.session_manager import SessionManager
from n8n_mcp_manager.tool_handlers import N8NToolHandlers
from n8n_mcp_manager.tool_schemas import tool_definitions

# stderr only: stdout carries the protocol in stdio mode
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def request_timeout_from_env() -> Optional[float]:
    raw = os.environ.get("N8N_REQUEST_TIMEOUT")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid N8N_REQUEST_TIMEOUT: {raw!r}")
        return None


def build_handlers(registry: InstanceRegistry) -> N8NToolHandlers:
    client_factory = functools.partial(N8NClient, timeout=request_timeout_from_env())
    return N8NToolHandlers(registry.instances, client_factory=client_factory)


class N8NSSEServer:
    """aiohttp server hosting the SSE transport"""

    def __init__(self, registry: InstanceRegistry, handlers: N8NToolHandlers,
                 port: int = 3000, host: str = "0.0.0.0"):
        self.registry = registry
        self.port = port
        self.host = host
        self.sessions = SessionManager(lambda: create_mcp_server(handlers))
        self.app = None
        self.runner = None
        self.site = None
        self._shutdown_event = asyncio.Event()

    async def start_server(self):
        """Start the HTTP server"""
        self.app = create_app(self.registry, self.sessions)
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info(f"N8N MCP Server running on http://{self.host}:{self.port}")
        logger.info(f"SSE endpoint: http://{self.host}:{self.port}/sse")
        logger.info(f"Loaded {len(self.registry)} N8N instance(s)")

    async def stop_server(self):
        """Stop the HTTP server"""
        try:
            if self.site:
                await self.site.stop()
            if self.runner:
                await self.runner.cleanup()
                logger.info("Server runner cleaned up")
        except Exception as e:
            logger.error(f"Error stopping server: {e}")

    async def run_forever(self):
        """Run server until shutdown signal"""
        await self.start_server()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._shutdown_event.set)
            except NotImplementedError:
                # not available on Windows event loops
                pass

        try:
            await self._shutdown_event.wait()
        finally:
            logger.info("Shutting down N8N MCP Server...")
            await self.stop_server()


def list_tools():
    """Print the tool catalogue"""
    print(json.dumps(tool_definitions(), indent=2))


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="MCP server for managing multiple n8n instances",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  n8n-mcp-server                          # SSE server on $PORT (default 3000)
  n8n-mcp-server --transport stdio        # Serve a single client over stdio
  n8n-mcp-server --port 8080 --verbose    # Custom port, debug logging
  n8n-mcp-server --list-tools             # Print the tool catalogue
        """
    )

    parser.add_argument(
        '--transport',
        choices=('sse', 'stdio'),
        default=os.environ.get('MCP_TRANSPORT', 'sse'),
        help='Transport to serve (default: $MCP_TRANSPORT or sse)'
    )

    parser.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.environ.get('PORT', '3000')),
        help='Port for the SSE server (default: $PORT or 3000)'
    )

    parser.add_argument(
        '--host',
        type=str,
        default=os.environ.get('HOST', '0.0.0.0'),
        help='Host to bind the SSE server to (default: $HOST or 0.0.0.0)'
    )

    parser.add_argument(
        '--list-tools', '-l',
        action='store_true',
        help='List all available tools and exit'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

    if args.list_tools:
        list_tools()
        return

    registry = InstanceRegistry.from_env()
    handlers = build_handlers(registry)

    try:
        if args.transport == 'stdio':
            asyncio.run(run_stdio_server(handlers))
        else:
            server = N8NSSEServer(registry, handlers, port=args.port, host=args.host)
            asyncio.run(server.run_forever())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
