#!/usr/bin/env python3
"""
Tool argument schemas for the n8n MCP tools

Each tool has one pydantic model. The model validates incoming arguments,
fills defaults, and is the source of the JSON schema advertised to clients.
"""

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

ExecutionStatus = Literal["running", "success", "error", "waiting", "canceled"]

INSTANCE_DESCRIPTION = "Name of the N8N instance"


class ToolArgs(BaseModel):
    # unknown keys are dropped, the same way clients expect from other MCP servers
    model_config = ConfigDict(extra="ignore")


class InstanceArgs(ToolArgs):
    instance: str = Field(description=INSTANCE_DESCRIPTION)


class ListInstancesArgs(ToolArgs):
    pass


class ListWorkflowsArgs(InstanceArgs):
    active: Optional[bool] = Field(default=None, description="Filter by active status")
    tags: Optional[str] = Field(default=None, description="Filter by tags (comma-separated)")
    limit: int = Field(default=100, description="Maximum number of workflows to return")


class SearchWorkflowsArgs(InstanceArgs):
    query: str = Field(description="Search query to filter workflows by name")
    active: Optional[bool] = Field(default=None, description="Filter by active status")


class GetWorkflowArgs(InstanceArgs):
    workflowId: str = Field(description="ID of the workflow")


class CreateWorkflowArgs(InstanceArgs):
    name: str = Field(description="Name of the new workflow")
    nodes: Optional[List[Any]] = Field(default=None, description="Workflow nodes")
    connections: Optional[Dict[str, Any]] = Field(default=None, description="Node connections")
    settings: Optional[Dict[str, Any]] = Field(default=None, description="Workflow settings")
    active: bool = Field(default=False, description="Whether to activate the workflow")


class UpdateWorkflowArgs(InstanceArgs):
    workflowId: str = Field(description="ID of the workflow to update")
    name: Optional[str] = Field(default=None, description="New name for the workflow")
    nodes: Optional[List[Any]] = Field(default=None, description="Updated workflow nodes")
    connections: Optional[Dict[str, Any]] = Field(default=None, description="Updated node connections")
    settings: Optional[Dict[str, Any]] = Field(default=None, description="Updated workflow settings")
    active: Optional[bool] = Field(default=None, description="Whether to activate/deactivate the workflow")

    def patch(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent, null counts as not sent"""
        return self.model_dump(
            include={"name", "nodes", "connections", "settings", "active"},
            exclude_unset=True,
            exclude_none=True,
        )


class DeleteWorkflowArgs(InstanceArgs):
    workflowId: str = Field(description="ID of the workflow to delete")


class ToggleWorkflowArgs(InstanceArgs):
    workflowId: str = Field(description="ID of the workflow")
    active: bool = Field(description="Whether to activate (true) or deactivate (false) the workflow")


class ExecuteWorkflowArgs(InstanceArgs):
    workflowId: str = Field(description="ID of the workflow to execute")


class ListExecutionsArgs(InstanceArgs):
    workflowId: Optional[str] = Field(default=None, description="Filter by workflow ID")
    status: Optional[ExecutionStatus] = Field(default=None, description="Filter by execution status")
    limit: int = Field(default=20, description="Maximum number of executions to return")


class GetExecutionArgs(InstanceArgs):
    executionId: str = Field(description="ID of the execution")


# name -> (argument model, description)
TOOL_SCHEMAS: Dict[str, tuple] = {
    "n8n_list_instances": (
        ListInstancesArgs,
        "List all available N8N instances configured in the server",
    ),
    "n8n_list_workflows": (
        ListWorkflowsArgs,
        "List all workflows in a specific N8N instance",
    ),
    "n8n_search_workflows": (
        SearchWorkflowsArgs,
        "Search for workflows by name in a specific N8N instance",
    ),
    "n8n_get_workflow": (
        GetWorkflowArgs,
        "Get detailed information about a specific workflow",
    ),
    "n8n_create_workflow": (
        CreateWorkflowArgs,
        "Create a new workflow in a specific N8N instance",
    ),
    "n8n_update_workflow": (
        UpdateWorkflowArgs,
        "Update an existing workflow in a specific N8N instance",
    ),
    "n8n_delete_workflow": (
        DeleteWorkflowArgs,
        "Delete a workflow from a specific N8N instance",
    ),
    "n8n_toggle_workflow": (
        ToggleWorkflowArgs,
        "Activate or deactivate a workflow in a specific N8N instance",
    ),
    "n8n_execute_workflow": (
        ExecuteWorkflowArgs,
        "Execute a workflow in a specific N8N instance",
    ),
    "n8n_list_executions": (
        ListExecutionsArgs,
        "List workflow executions in a specific N8N instance",
    ),
    "n8n_get_execution": (
        GetExecutionArgs,
        "Get detailed information about a specific execution",
    ),
}


def input_schema(model: Type[ToolArgs]) -> Dict[str, Any]:
    """JSON schema for a tool's arguments, always an object schema"""
    schema = model.model_json_schema()
    schema.pop("title", None)
    schema.setdefault("properties", {})
    schema.setdefault("required", [])
    return schema


def tool_definitions() -> List[Dict[str, Any]]:
    """Tool catalogue in MCP tools/list shape"""
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": input_schema(model),
        }
        for name, (model, description) in TOOL_SCHEMAS.items()
    ]
