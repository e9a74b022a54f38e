#!/usr/bin/env python3
"""
n8n REST API Client
Handles all HTTP requests to a single n8n instance
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from .errors import N8NAPIError
from .instance_config import Instance

logger = logging.getLogger(__name__)

API_VERSION_PATH = "/api/v1"
API_KEY_HEADER = "X-N8N-API-KEY"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class N8NClient:
    """
    Thin async wrapper around the n8n public API of one instance.

    Holds nothing but the instance record; every call opens its own
    aiohttp session.
    """

    def __init__(self, instance: Instance, timeout: Optional[float] = None):
        self.instance = instance
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"{self.instance.url}{API_VERSION_PATH}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            API_KEY_HEADER: self.instance.api_key,
        }

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform one authenticated request and return the decoded JSON body.

        Returns None for 204 responses. Raises N8NAPIError on any non-2xx
        status, using the backend's "message" field when it sends one.
        """
        url = f"{self.base_url}{path}"
        query = {
            key: _query_value(value)
            for key, value in (params or {}).items()
            if value is not None
        }
        data = json.dumps(body) if body is not None else None
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        logger.debug(f"{method} {url} ({self.instance.name})")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=self.headers, params=query or None, data=data
                ) as response:
                    return await self._read_response(response)
        except asyncio.TimeoutError:
            raise N8NAPIError(f"Request timed out after {self.timeout}s")

    async def _read_response(self, response: aiohttp.ClientResponse) -> Any:
        # anything outside 2xx is a failure, including unfollowed 3xx
        if not 200 <= response.status < 300:
            message = f"HTTP {response.status}: {response.reason}"
            try:
                error_body = await response.json(content_type=None)
                if isinstance(error_body, dict) and error_body.get("message"):
                    message = error_body["message"]
            except (json.JSONDecodeError, aiohttp.ContentTypeError, UnicodeDecodeError):
                pass
            raise N8NAPIError(message, status=response.status)

        if response.status == 204:
            return None

        return await response.json(content_type=None)

    # ===== WORKFLOWS =====

    async def list_workflows(
        self,
        active: Optional[bool] = None,
        tags: Optional[str] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List workflows, returns {"data": [...], "nextCursor": ...}"""
        params = {
            "active": active,
            "tags": tags or None,
            "limit": limit or None,
            "cursor": cursor or None,
        }
        return await self.request("GET", "/workflows", params=params)

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/workflows/{_segment(workflow_id)}")

    async def create_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", "/workflows", workflow)

    async def update_workflow(self, workflow_id: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the given fields of a workflow. Never used for activation."""
        return await self.request("PUT", f"/workflows/{_segment(workflow_id)}", workflow)

    async def delete_workflow(self, workflow_id: str) -> None:
        await self.request("DELETE", f"/workflows/{_segment(workflow_id)}")

    async def activate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self.request("POST", f"/workflows/{_segment(workflow_id)}/activate")

    async def deactivate_workflow(self, workflow_id: str) -> Dict[str, Any]:
        return await self.request("POST", f"/workflows/{_segment(workflow_id)}/deactivate")

    # ===== EXECUTIONS =====

    async def execute_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Start a run, returns {"data": {"executionId": ...}}"""
        return await self.request("POST", f"/workflows/{_segment(workflow_id)}/run")

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "workflowId": workflow_id or None,
            "status": status or None,
            "limit": limit or None,
            "cursor": cursor or None,
        }
        return await self.request("GET", "/executions", params=params)

    async def get_execution(self, execution_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/executions/{_segment(execution_id)}")

    async def delete_execution(self, execution_id: str) -> None:
        await self.request("DELETE", f"/executions/{_segment(execution_id)}")
