"""
n8n MCP server test suite

Structure:
- unit/: tests for the instance registry, n8n client, tool handlers,
  protocol server wiring and SSE session routing
- conftest.py: fake n8n backend and aiohttp test client fixtures
"""
