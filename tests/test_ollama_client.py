from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.adapters.ollama_client import ModelBackendError, OllamaClient


def _client(handler, **kwargs) -> OllamaClient:
    return OllamaClient(
        base_url="http://ollama.test/api",
        model="mistral",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_chat_merges_instructions_into_system_message():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "Hi there"}})

    messages = [
        {"role": "system", "content": "You manage hostels."},
        {"role": "user", "content": "hello"},
    ]
    reply = asyncio.run(_client(handler).chat(messages, instructions="Use tools.", temperature=0))

    body = captured["body"]
    assert captured["path"] == "/api/chat"
    assert body["model"] == "mistral"
    assert body["stream"] is False
    assert body["options"]["temperature"] == 0
    assert body["messages"][0] == {"role": "system", "content": "You manage hostels.\n\nUse tools."}
    assert len(body["messages"]) == 2
    assert reply.content == "Hi there"
    assert reply.tool_calls == []


def test_chat_uses_configured_temperature_by_default():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"content": "ok"}})

    asyncio.run(_client(handler, temperature=0.7).chat([{"role": "user", "content": "hi"}]))

    assert captured["body"]["options"]["temperature"] == 0.7


def test_native_tool_calls_are_parsed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "message": {
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "get_all_houses", "arguments": {}}},
                        {"function": {"name": "get_rooms_by_house", "arguments": {"houseId": 2}}},
                        {"function": {"arguments": {"ignored": True}}},
                    ],
                }
            },
        )

    reply = asyncio.run(_client(handler).chat([{"role": "user", "content": "rooms"}]))

    assert reply.tool_calls == [
        {"name": "get_all_houses", "arguments": {}},
        {"name": "get_rooms_by_house", "arguments": {"houseId": 2}},
    ]


def test_http_errors_raise_model_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "model not loaded"})

    with pytest.raises(ModelBackendError):
        asyncio.run(_client(handler).chat([{"role": "user", "content": "hi"}]))


def test_unreachable_backend_raises_model_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ModelBackendError):
        asyncio.run(_client(handler).chat([{"role": "user", "content": "hi"}]))


def test_is_available_reports_connection_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert asyncio.run(_client(handler).is_available()) is False
