#!/usr/bin/env python3
"""
Tool handlers for n8n management across multiple instances

N8NToolHandlers.dispatch() is the single entry point used by the MCP server.
It validates arguments, resolves the target instance, runs exactly one
backend operation and shapes the answer into a ToolResult. Nothing raised
inside a handler escapes dispatch().
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import InstanceNotFoundError, UnknownToolError
from .instance_config import NO_INSTANCES_HINT, Instance, get_instance_by_name
from .n8n_client import N8NClient
from .tool_schemas import (
    TOOL_SCHEMAS,
    CreateWorkflowArgs,
    DeleteWorkflowArgs,
    ExecuteWorkflowArgs,
    GetExecutionArgs,
    GetWorkflowArgs,
    ListExecutionsArgs,
    ListInstancesArgs,
    ListWorkflowsArgs,
    SearchWorkflowsArgs,
    ToggleWorkflowArgs,
    UpdateWorkflowArgs,
)

logger = logging.getLogger(__name__)

# Search filters client-side, so it only sees this many workflows
SEARCH_PAGE_SIZE = 200


@dataclass(frozen=True)
class ToolResult:
    """Uniform tool-call outcome: pretty-printed JSON text plus error flag"""
    payload: str
    is_error: bool = False

    @classmethod
    def success(cls, data: Dict[str, Any]) -> 'ToolResult':
        return cls(payload=json.dumps(data, indent=2), is_error=False)

    @classmethod
    def failure(cls, message: str) -> 'ToolResult':
        return cls(payload=json.dumps({"error": message}, indent=2), is_error=True)


def _pick(source: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Copy only the keys the backend actually returned"""
    return {key: source[key] for key in keys if key in source}


def _tag_names(item: Dict[str, Any]) -> List[str]:
    return [tag.get("name") for tag in item.get("tags") or []]


class N8NToolHandlers:
    """One coroutine per tool, bound to the configured instances"""

    def __init__(
        self,
        instances: List[Instance],
        client_factory: Callable[[Instance], N8NClient] = N8NClient,
    ):
        self.instances = list(instances)
        self.client_factory = client_factory
        self._handlers = {
            "n8n_list_instances": self.list_instances,
            "n8n_list_workflows": self.list_workflows,
            "n8n_search_workflows": self.search_workflows,
            "n8n_get_workflow": self.get_workflow,
            "n8n_create_workflow": self.create_workflow,
            "n8n_update_workflow": self.update_workflow,
            "n8n_delete_workflow": self.delete_workflow,
            "n8n_toggle_workflow": self.toggle_workflow,
            "n8n_execute_workflow": self.execute_workflow,
            "n8n_list_executions": self.list_executions,
            "n8n_get_execution": self.get_execution,
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._handlers)

    def get_client(self, instance_name: str) -> N8NClient:
        instance = get_instance_by_name(self.instances, instance_name)
        if instance is None:
            raise InstanceNotFoundError(instance_name, [i.name for i in self.instances])
        return self.client_factory(instance)

    async def dispatch(self, tool_name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """Validate, run and wrap one tool call. Never raises."""
        logger.debug(f"Tool call: {tool_name}")
        try:
            handler = self._handlers.get(tool_name)
            if handler is None:
                raise UnknownToolError(tool_name)

            model, _ = TOOL_SCHEMAS[tool_name]
            args = model.model_validate(arguments or {})
            return ToolResult.success(await handler(args))
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(f"Tool {tool_name} failed: {message}")
            return ToolResult.failure(message)

    # ===== INSTANCES =====

    async def list_instances(self, args: ListInstancesArgs) -> Dict[str, Any]:
        result = {
            "count": len(self.instances),
            "instances": [instance.to_public_dict() for instance in self.instances],
        }
        if not self.instances:
            result["message"] = NO_INSTANCES_HINT
        return result

    # ===== WORKFLOWS =====

    async def list_workflows(self, args: ListWorkflowsArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        result = await client.list_workflows(
            active=args.active,
            tags=args.tags,
            limit=args.limit,
        )

        workflows = [
            {**_pick(w, "id", "name", "active", "updatedAt"), "tags": _tag_names(w)}
            for w in (result or {}).get("data", [])
        ]
        return {
            "instance": args.instance,
            "count": len(workflows),
            "workflows": workflows,
        }

    async def search_workflows(self, args: SearchWorkflowsArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        result = await client.list_workflows(active=args.active, limit=SEARCH_PAGE_SIZE)

        query = args.query.lower()
        page = (result or {}).get("data", [])[:SEARCH_PAGE_SIZE]
        workflows = [
            _pick(w, "id", "name", "active", "updatedAt")
            for w in page
            if query in (w.get("name") or "").lower()
        ]
        return {
            "instance": args.instance,
            "query": args.query,
            "count": len(workflows),
            "workflows": workflows,
        }

    async def get_workflow(self, args: GetWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        workflow = await client.get_workflow(args.workflowId) or {}

        nodes = workflow.get("nodes")
        details = _pick(workflow, "id", "name", "active", "createdAt", "updatedAt")
        details["tags"] = _tag_names(workflow)
        details["nodeCount"] = len(nodes or [])
        if nodes is not None:
            details["nodes"] = [_pick(node, "name", "type") for node in nodes]
        details.update(_pick(workflow, "connections", "settings"))
        return {"instance": args.instance, "workflow": details}

    async def create_workflow(self, args: CreateWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        body = args.model_dump(
            include={"name", "nodes", "connections", "settings", "active"},
            exclude_none=True,
        )
        workflow = await client.create_workflow(body)
        return {
            "instance": args.instance,
            "message": "Workflow created successfully",
            "workflow": _pick(workflow or {}, "id", "name", "active", "createdAt"),
        }

    async def update_workflow(self, args: UpdateWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        workflow = await client.update_workflow(args.workflowId, args.patch())
        return {
            "instance": args.instance,
            "message": "Workflow updated successfully",
            "workflow": _pick(workflow or {}, "id", "name", "active", "updatedAt"),
        }

    async def delete_workflow(self, args: DeleteWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        await client.delete_workflow(args.workflowId)
        return {
            "instance": args.instance,
            "message": f"Workflow {args.workflowId} deleted successfully",
        }

    async def toggle_workflow(self, args: ToggleWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        if args.active:
            workflow = await client.activate_workflow(args.workflowId)
        else:
            workflow = await client.deactivate_workflow(args.workflowId)

        state = "activated" if args.active else "deactivated"
        return {
            "instance": args.instance,
            "message": f"Workflow {state} successfully",
            "workflow": _pick(workflow or {}, "id", "name", "active"),
        }

    # ===== EXECUTIONS =====

    async def execute_workflow(self, args: ExecuteWorkflowArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        result = await client.execute_workflow(args.workflowId)
        data = (result or {}).get("data") or {}
        return {
            "instance": args.instance,
            "message": "Workflow execution started",
            "executionId": data.get("executionId"),
            "workflowId": args.workflowId,
        }

    async def list_executions(self, args: ListExecutionsArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        result = await client.list_executions(
            workflow_id=args.workflowId,
            status=args.status,
            limit=args.limit,
        )

        executions = [
            _pick(e, "id", "workflowId", "workflowName", "status", "startedAt", "stoppedAt", "mode")
            for e in (result or {}).get("data", [])
        ]
        return {
            "instance": args.instance,
            "count": len(executions),
            "executions": executions,
        }

    async def get_execution(self, args: GetExecutionArgs) -> Dict[str, Any]:
        client = self.get_client(args.instance)
        execution = await client.get_execution(args.executionId)
        return {
            "instance": args.instance,
            "execution": _pick(
                execution or {},
                "id", "workflowId", "workflowName", "status", "mode",
                "startedAt", "stoppedAt", "finished", "retryOf", "retrySuccessId", "data",
            ),
        }
