"""Command line entry point"""

import json

import n8n_mcp_main
from n8n_mcp_manager.instance_config import Instance, InstanceRegistry


def test_request_timeout_from_env(monkeypatch):
    monkeypatch.delenv("N8N_REQUEST_TIMEOUT", raising=False)
    assert n8n_mcp_main.request_timeout_from_env() is None

    monkeypatch.setenv("N8N_REQUEST_TIMEOUT", "12.5")
    assert n8n_mcp_main.request_timeout_from_env() == 12.5

    monkeypatch.setenv("N8N_REQUEST_TIMEOUT", "soon")
    assert n8n_mcp_main.request_timeout_from_env() is None


def test_build_handlers_applies_timeout(monkeypatch):
    monkeypatch.setenv("N8N_REQUEST_TIMEOUT", "3")
    registry = InstanceRegistry([Instance(name="prod", url="https://p", api_key="k")])

    handlers = n8n_mcp_main.build_handlers(registry)
    client = handlers.get_client("PROD")

    assert client.timeout == 3.0
    assert client.base_url == "https://p/api/v1"


def test_list_tools_flag_prints_catalogue(capsys):
    n8n_mcp_main.main(["--list-tools"])

    tools = json.loads(capsys.readouterr().out)
    assert len(tools) == 11
    assert tools[0]["name"] == "n8n_list_instances"
