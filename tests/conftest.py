"""Shared fixtures: fake n8n backends and aiohttp test clients"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from n8n_mcp_manager.instance_config import Instance


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, str]
    body: Any
    api_key: Optional[str]
    content_type: Optional[str]


class FakeN8N:
    """Minimal n8n API stand-in that records every request it receives"""

    def __init__(self, name: str):
        self.name = name
        self.instance: Optional[Instance] = None
        self.requests: List[RecordedRequest] = []
        self._routes: Dict[tuple, tuple] = {}

    def route(self, method: str, path: str, payload: Any = None, status: int = 200,
              delay: float = 0):
        self._routes[(method, f"/api/v1{path}")] = (status, payload, delay)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self._handle)
        return app

    async def _handle(self, request: web.Request) -> web.Response:
        raw = await request.text()
        self.requests.append(RecordedRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            body=json.loads(raw) if raw else None,
            api_key=request.headers.get("X-N8N-API-KEY"),
            content_type=request.headers.get("Content-Type"),
        ))

        status, payload, delay = self._routes.get(
            (request.method, request.path), (404, {"message": "Not found"}, 0)
        )
        if delay:
            await asyncio.sleep(delay)
        if status == 204:
            return web.Response(status=204)
        if isinstance(payload, str):
            return web.Response(status=status, text=payload)
        return web.json_response(payload, status=status)


@pytest_asyncio.fixture
async def n8n_backend():
    """Factory starting fake n8n servers; each gets a matching Instance"""
    servers = []

    async def _start(name: str = "prod", api_key: Optional[str] = None) -> FakeN8N:
        fake = FakeN8N(name)
        server = TestServer(fake.make_app())
        await server.start_server()
        servers.append(server)
        fake.instance = Instance(
            name=name,
            url=f"http://{server.host}:{server.port}/",
            api_key=api_key or f"key-{name}",
        )
        return fake

    yield _start

    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def make_client():
    """Factory wrapping an aiohttp app in a started TestClient"""
    clients = []

    async def _make(app: web.Application) -> TestClient:
        client = TestClient(TestServer(app))
        await client.start_server()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()
