from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.adapters.mcp_client import McpClient, ToolBackendError
from src.services.session_store import SessionContext
from src.services.tool_gateway import ToolGateway


def _client(handler) -> McpClient:
    return McpClient(base_url="http://mcp.test/", transport=httpx.MockTransport(handler))


def test_list_tools_parses_catalog_and_skips_malformed_entries():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tools"
        return httpx.Response(
            200,
            json={
                "tools": [
                    {
                        "name": "count_rooms_by_house_and_status",
                        "description": "Count rooms",
                        "inputSchema": {
                            "type": "object",
                            "properties": {"houseId": {"type": "number"}, "status": {"type": "string"}},
                            "required": ["houseId"],
                        },
                    },
                    {"description": "missing a name"},
                    {"name": "get_all_houses", "category": "house"},
                ]
            },
        )

    tools = asyncio.run(ToolGateway(_client(handler)).list_tools())

    assert [tool.name for tool in tools] == ["count_rooms_by_house_and_status", "get_all_houses"]
    assert tools[0].parameters["houseId"].required is True
    assert tools[0].parameters["status"].required is False
    assert tools[1].category == "house"


def test_list_tools_keeps_tools_without_arguments():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "tools": [
                    {"name": "get_all_houses", "inputSchema": {"type": "object"}},
                    {"name": "get_all_rooms", "parameters": {"type": "object", "additionalProperties": False}},
                    {"name": "get_current_user", "inputSchema": {"type": "object", "properties": {}, "required": []}},
                ]
            },
        )

    tools = asyncio.run(ToolGateway(_client(handler)).list_tools())

    assert [tool.name for tool in tools] == ["get_all_houses", "get_all_rooms", "get_current_user"]
    assert all(tool.parameters == {} for tool in tools)


def test_list_tools_returns_empty_when_server_is_down():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(ToolGateway(_client(handler)).list_tools()) == []


def test_execute_forwards_arguments_and_auth_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["authorization"] = request.headers.get("Authorization")
        seen["user"] = request.headers.get("X-User-Id")
        return httpx.Response(200, json={"success": True, "count": 3})

    session = SessionContext(session_id="s1", is_authenticated=True, token="jwt-abc", user_id="user-9")
    result = asyncio.run(
        ToolGateway(_client(handler)).execute(
            "count_rooms_by_house_and_status", {"houseId": 1, "status": "AVAILABLE"}, session
        )
    )

    assert result == {"success": True, "count": 3}
    assert seen == {
        "path": "/api/tools/count_rooms_by_house_and_status",
        "body": {"houseId": 1, "status": "AVAILABLE"},
        "authorization": "Bearer jwt-abc",
        "user": "user-9",
    }


def test_execute_without_session_sends_no_auth_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["authorization"] = request.headers.get("Authorization")
        seen["user"] = request.headers.get("X-User-Id")
        return httpx.Response(200, json={"houses": []})

    anonymous = SessionContext(session_id="s1")
    gateway = ToolGateway(_client(handler))

    asyncio.run(gateway.execute("get_all_houses", {}, anonymous))

    assert seen == {"authorization": None, "user": None}


def test_execute_reports_server_errors_as_failed_result():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Token expired"})

    result = asyncio.run(ToolGateway(_client(handler)).execute("get_all_houses", {}))

    assert result == {"success": False, "error": "Token expired"}


def test_execute_reports_unreachable_server_as_failed_result():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = asyncio.run(ToolGateway(_client(handler)).execute("get_all_houses", {}))

    assert result["success"] is False
    assert "timed out" in result["error"]


def test_call_tool_raises_with_status_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="unavailable")

    with pytest.raises(ToolBackendError) as excinfo:
        asyncio.run(_client(handler).call_tool("get_all_houses", {}))

    assert excinfo.value.status_code == 503


def test_execute_requires_a_tool_name():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never reached
        return httpx.Response(200, json={})

    with pytest.raises(ValueError):
        asyncio.run(ToolGateway(_client(handler)).execute("", {}))


def test_is_available_checks_health_endpoint():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200 if request.url.path == "/api/health" else 404)

    assert asyncio.run(ToolGateway(_client(handler)).is_available()) is True
