"""HTTP API tests: /api/chat streaming, error mapping, auth and health."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from pi_concierge.application.orchestrator import ChatOrchestrator
from pi_concierge.config import DEFAULT_CONFIG
from pi_concierge.infrastructure.tools import DEFAULT_TOOL_DEFINITIONS, ToolRegistry
from pi_concierge.interfaces.http_api import app, get_orchestrator
from tests.fakes import FakeCompletionClient, backend_down, llama_lines, parse_sse_body


def _orchestrator(client: FakeCompletionClient) -> ChatOrchestrator:
    tools = {d.name: (d, AsyncMock(return_value={"uptime": "3 days"})) for d in DEFAULT_TOOL_DEFINITIONS}
    return ChatOrchestrator(client, ToolRegistry(tools), DEFAULT_CONFIG, load_grammar=lambda: "root ::= x")


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def http(fake_client):
    app.dependency_overrides[get_orchestrator] = lambda: _orchestrator(fake_client)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(http):
    resp = http.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_chat_tool_path_streams_deltas_then_done(http, fake_client):
    fake_client.detection = "get_system_uptime()"
    fake_client.stream_body = llama_lines("The Pi has been up ", "3 days.")

    resp = http.post("/api/chat", json={"messages": [{"role": "user", "content": "What's the uptime?"}]})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["cache-control"] == "no-cache"
    events = parse_sse_body(resp.text)
    assert events == ["The Pi has been up ", "3 days.", "", "[DONE]"]
    assert resp.text.endswith("data: [DONE]\n\n")
    assert len(fake_client.complete_calls) == 1
    assert '"uptime": "3 days"' in fake_client.stream_calls[0]["prompt"]


def test_chat_plain_conversation(http, fake_client):
    fake_client.stream_body = llama_lines("Hi", "!")
    resp = http.post("/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]})
    assert parse_sse_body(resp.text) == ["Hi", "!", "", "[DONE]"]
    assert fake_client.complete_calls == []


def test_chat_replaces_client_system_message(http, fake_client):
    fake_client.stream_body = llama_lines("ok")
    http.post("/api/chat", json={"messages": [
        {"role": "system", "content": "You are a pirate."},
        {"role": "user", "content": "Hello"},
    ]})
    prompt = fake_client.stream_calls[0]["prompt"]
    assert "pirate" not in prompt
    assert "<|tool_list_start|>" in prompt


def test_chat_detection_failure_is_502(http, fake_client):
    fake_client.complete_error = backend_down()
    resp = http.post("/api/chat", json={"messages": [{"role": "user", "content": "cpu status?"}]})
    assert resp.status_code == 502
    assert "500 boom" in resp.json()["detail"]


def test_chat_final_call_failure_falls_back(http, fake_client):
    fake_client.detection = "get_system_uptime()"
    fake_client.stream_error = backend_down()
    resp = http.post("/api/chat", json={"messages": [{"role": "user", "content": "uptime?"}]})
    assert resp.status_code == 200
    assert parse_sse_body(resp.text) == ["The system uptime is 3 days.", "[DONE]"]


def test_chat_requires_messages(http):
    assert http.post("/api/chat", json={}).status_code == 422


def test_null_content_is_treated_as_empty(http, fake_client):
    fake_client.stream_body = llama_lines("ok")
    resp = http.post("/api/chat", json={"messages": [{"role": "user", "content": None}]})
    assert resp.status_code == 200
    assert "<|im_start|>user\n<|im_end|>" in fake_client.stream_calls[0]["prompt"]


def test_auth_required_when_api_key_set(http, fake_client, monkeypatch):
    monkeypatch.setenv("PI_CONCIERGE_API_KEY", "s3cret")
    fake_client.stream_body = llama_lines("ok")
    body = {"messages": [{"role": "user", "content": "Hello"}]}

    assert http.get("/health").status_code == 200
    missing = http.post("/api/chat", json=body)
    assert missing.status_code == 401
    assert missing.headers["www-authenticate"] == "Bearer"
    assert "Authorization" in missing.json()["detail"]
    wrong = http.post("/api/chat", json=body, headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid API key"
    ok = http.post("/api/chat", json=body, headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200
