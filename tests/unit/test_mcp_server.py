"""Protocol server wiring and advertised tool schemas"""

import json
from importlib.metadata import version

import pytest
from mcp import types

from n8n_mcp_manager.instance_config import Instance
from n8n_mcp_manager.mcp_server import SERVER_NAME, create_mcp_server
from n8n_mcp_manager.tool_handlers import N8NToolHandlers
from n8n_mcp_manager.tool_schemas import TOOL_SCHEMAS, tool_definitions

EXPECTED_TOOLS = [
    "n8n_list_instances",
    "n8n_list_workflows",
    "n8n_search_workflows",
    "n8n_get_workflow",
    "n8n_create_workflow",
    "n8n_update_workflow",
    "n8n_delete_workflow",
    "n8n_toggle_workflow",
    "n8n_execute_workflow",
    "n8n_list_executions",
    "n8n_get_execution",
]


def test_installed_sdk_provides_decorator_api():
    assert int(version("mcp").split(".")[0]) < 2
    server = create_mcp_server(N8NToolHandlers([]))
    assert types.ListToolsRequest in server.request_handlers
    assert types.CallToolRequest in server.request_handlers


def schema_for(name):
    return next(t["inputSchema"] for t in tool_definitions() if t["name"] == name)


def test_tool_catalogue_matches_handlers():
    assert [t["name"] for t in tool_definitions()] == EXPECTED_TOOLS
    assert N8NToolHandlers([]).tool_names == EXPECTED_TOOLS
    assert list(TOOL_SCHEMAS) == EXPECTED_TOOLS


def test_every_tool_but_list_instances_requires_instance():
    for definition in tool_definitions():
        schema = definition["inputSchema"]
        assert schema["type"] == "object"
        if definition["name"] == "n8n_list_instances":
            assert schema["properties"] == {}
            assert schema["required"] == []
        else:
            assert "instance" in schema["required"]


def test_schema_defaults_and_required_fields():
    assert schema_for("n8n_list_workflows")["properties"]["limit"]["default"] == 100
    assert schema_for("n8n_list_executions")["properties"]["limit"]["default"] == 20
    assert schema_for("n8n_create_workflow")["properties"]["active"]["default"] is False
    assert set(schema_for("n8n_toggle_workflow")["required"]) == {"instance", "workflowId", "active"}
    assert set(schema_for("n8n_update_workflow")["required"]) == {"instance", "workflowId"}
    assert set(schema_for("n8n_search_workflows")["required"]) == {"instance", "query"}


def test_execution_status_is_an_enum():
    status = schema_for("n8n_list_executions")["properties"]["status"]
    assert '"running"' in json.dumps(status)
    assert '"canceled"' in json.dumps(status)


@pytest.mark.asyncio
async def test_list_tools_handler():
    server = create_mcp_server(N8NToolHandlers([]))
    handler = server.request_handlers[types.ListToolsRequest]

    result = await handler(types.ListToolsRequest(method="tools/list"))

    assert server.name == SERVER_NAME
    assert [tool.name for tool in result.root.tools] == EXPECTED_TOOLS


@pytest.mark.asyncio
async def test_call_tool_success_and_error_results():
    handlers = N8NToolHandlers([Instance(name="prod", url="https://p", api_key="k")])
    server = create_mcp_server(handlers)
    handler = server.request_handlers[types.CallToolRequest]

    ok = await handler(types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="n8n_list_instances", arguments={}),
    ))
    assert ok.root.isError is False
    assert json.loads(ok.root.content[0].text)["count"] == 1

    failed = await handler(types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="nope", arguments=None),
    ))
    assert failed.root.isError is True
    assert json.loads(failed.root.content[0].text) == {"error": "Unknown tool: nope"}
