#!/usr/bin/env python3
"""
HTTP API Handlers for the n8n MCP Server (SSE transport)

    GET  /                      server identity and configured instances
    GET  /health                liveness probe
    GET  /sse                   open a streaming MCP session
    POST /messages?sessionId=   deliver a client message into a session
"""

import asyncio
import logging

import aiohttp_cors
from aiohttp import web

from .errors import SessionRoutingError
from .instance_config import InstanceRegistry
from .mcp_server import SERVER_NAME, SERVER_VERSION
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry", InstanceRegistry)
SESSIONS_KEY = web.AppKey("sessions", SessionManager)

SSE_PATH = "/sse"
MESSAGES_PATH = "/messages"
HEALTH_PATH = "/health"


async def root_handler(request):
    """GET / - Server identity and configured instances"""
    registry = request.app[REGISTRY_KEY]
    return web.json_response({
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "transport": "sse",
        "endpoints": {
            "sse": SSE_PATH,
            "messages": MESSAGES_PATH,
            "health": HEALTH_PATH,
        },
        "instances": [instance.to_public_dict() for instance in registry],
    })


async def health_handler(request):
    """GET /health - Liveness probe"""
    return web.json_response({
        "status": "ok",
        "instances": len(request.app[REGISTRY_KEY]),
        "transport": "sse",
        "sessions": len(request.app[SESSIONS_KEY].active_sessions()),
    })


async def sse_handler(request):
    """GET /sse - Open a new streaming session"""
    return await request.app[SESSIONS_KEY].connect_sse(request)


async def messages_handler(request):
    """POST /messages - Deliver a client message into its session"""
    try:
        return await request.app[SESSIONS_KEY].handle_post_message(request)
    except SessionRoutingError as e:
        logger.warning(f"Rejected message: {e}")
        return web.json_response({"error": str(e)}, status=e.http_status)


@web.middleware
async def not_found_middleware(request, handler):
    """Unknown paths and methods answer with a JSON 404"""
    try:
        return await handler(request)
    except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
        return web.json_response({"error": "Not found"}, status=404)


@web.middleware
async def logging_middleware(request, handler):
    start_time = asyncio.get_running_loop().time()
    try:
        response = await handler(request)
        process_time = asyncio.get_running_loop().time() - start_time
        logger.info(f"{request.method} {request.path} - {response.status} - {process_time:.3f}s")
        return response
    except Exception as e:
        process_time = asyncio.get_running_loop().time() - start_time
        logger.error(f"{request.method} {request.path} - ERROR: {e} - {process_time:.3f}s")
        raise


def setup_routes(app):
    """Setup all API routes with CORS support"""
    cors = aiohttp_cors.setup(app, defaults={
        "*": aiohttp_cors.ResourceOptions(
            allow_credentials=False,
            expose_headers="*",
            allow_headers=("Content-Type",),
            allow_methods=("GET", "POST", "OPTIONS"),
        )
    })

    cors.add(app.router.add_get('/', root_handler))
    cors.add(app.router.add_get(HEALTH_PATH, health_handler))
    cors.add(app.router.add_get(SSE_PATH, sse_handler))
    cors.add(app.router.add_post(MESSAGES_PATH, messages_handler))


def create_app(registry: InstanceRegistry, sessions: SessionManager) -> web.Application:
    """Create aiohttp web application"""
    app = web.Application(middlewares=[logging_middleware, not_found_middleware])
    app[REGISTRY_KEY] = registry
    app[SESSIONS_KEY] = sessions
    setup_routes(app)
    return app
