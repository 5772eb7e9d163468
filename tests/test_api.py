"""Tests for the HTTP surface."""

from __future__ import annotations

from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from agent_server import __version__
from agent_server.main import create_app
from tests.helpers import UnreadableSaver, scripted_model, tool_call_message


@pytest.fixture
def client_for(make_runtime):
    """Build a TestClient around a runtime driven by ``model``."""

    with ExitStack() as stack:

        def _client(model):
            runtime, _ = make_runtime(model)
            return stack.enter_context(TestClient(create_app(runtime)))

        yield _client


class TestInfoEndpoints:
    def test_healthz(self, client_for):
        response = client_for(scripted_model()).get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_agent_info(self, client_for):
        response = client_for(scripted_model()).get("/langgraph")

        assert response.json() == {"status": "ok", "agent": "LangGraph Agent", "version": __version__}

    def test_cors_is_open(self, client_for):
        response = client_for(scripted_model()).options(
            "/langgraph",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestTurnEndpoint:
    def test_direct_answer(self, client_for):
        client = client_for(scripted_model("2 + 2 = 4"))

        response = client.post("/langgraph", json={"message": "2+2?"})

        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "2 + 2 = 4"
        assert body["threadId"].startswith("thread-")
        assert body["model"] == {"provider": "primary"}
        assert body["messages"] == [
            {"role": "user", "content": "2+2?"},
            {"role": "assistant", "content": "2 + 2 = 4"},
        ]

    def test_tool_round_is_reported(self, client_for):
        client = client_for(scripted_model(tool_call_message(("echo", {"text": "ping"})), "It said ping."))

        body = client.post(
            "/langgraph",
            json={"message": "echo ping", "modelConfig": {"provider": "local", "modelName": "llama"}},
        ).json()

        assert body["model"] == {"provider": "local", "modelName": "llama"}
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "tool", "assistant"]
        assert body["messages"][1]["toolCalls"] == [{"id": "call_1", "name": "echo", "args": {"text": "ping"}}]
        assert body["messages"][2] == {
            "role": "tool",
            "content": "Echo: ping",
            "toolCallId": "call_1",
            "name": "echo",
        }

    def test_thread_continues_and_can_be_loaded(self, client_for):
        client = client_for(scripted_model("Hi Alice!", "You are Alice."))

        first = client.post("/langgraph", json={"message": "I am Alice"}).json()
        second = client.post("/langgraph", json={"message": "Who am I?", "threadId": first["threadId"]}).json()

        assert second["threadId"] == first["threadId"]
        assert len(second["messages"]) == 4

        loaded = client.get(f"/threads/{first['threadId']}/messages").json()
        assert loaded["threadId"] == first["threadId"]
        assert loaded["messages"] == second["messages"]

    def test_unseen_thread_is_empty(self, client_for):
        response = client_for(scripted_model()).get("/threads/thread-unknown/messages")

        assert response.json() == {"threadId": "thread-unknown", "messages": []}


class TestTurnErrors:
    def test_missing_message(self, client_for):
        response = client_for(scripted_model()).post("/langgraph", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "LGR_VAL_001"
        assert body["statusCode"] == 400
        assert body["error"] == "Message is required and must be a string"
        assert body["troubleshooting"]

    def test_blank_message(self, client_for):
        response = client_for(scripted_model()).post("/langgraph", json={"message": "  "})

        assert response.status_code == 400
        assert response.json()["code"] == "LGR_VAL_001"

    def test_invalid_thread_id(self, client_for):
        response = client_for(scripted_model()).post("/langgraph", json={"message": "hi", "threadId": 7})

        assert response.status_code == 400
        assert response.json()["code"] == "LGR_VAL_002"

    def test_invalid_model_config(self, client_for):
        response = client_for(scripted_model()).post(
            "/langgraph", json={"message": "hi", "modelConfig": {"provider": "mystery"}}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "LGR_CFG_001"

    def test_model_failure_is_structured(self, client_for):
        client = client_for(scripted_model(fail_on_call=1))

        response = client.post("/langgraph", json={"message": "hi", "threadId": "thread-broken"})

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "LGR_SYS_001"
        assert body["error"] == "provider unreachable"
        assert "Traceback" not in response.text
        assert client.get("/threads/thread-broken/messages").json()["messages"] == []


class TestUnexpectedErrors:
    """Failures outside the error catalog still reach callers as structured payloads."""

    @pytest.fixture
    def broken_client(self, make_runtime):
        runtime, _ = make_runtime(scripted_model("unused"), checkpointer=UnreadableSaver())
        # Unhandled errors are re-raised by Starlette after the response is sent
        with TestClient(create_app(runtime), raise_server_exceptions=False) as client:
            yield client

    def test_thread_history_failure(self, broken_client):
        response = broken_client.get("/threads/t1/messages")

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["code"] == "LGR_SYS_001"
        assert body["statusCode"] == 500
        assert body["error"] == "checkpoint storage unavailable"
        assert body["details"] == {"type": "OSError"}

    def test_turn_history_failure(self, broken_client):
        response = broken_client.post("/langgraph", json={"message": "hi", "threadId": "t1"})

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "LGR_SYS_001"
        assert body["statusCode"] == 500
        assert "checkpoint storage unavailable" in body["error"]


class TestToolEndpoints:
    def test_lists_manifests(self, client_for):
        tools = client_for(scripted_model()).get("/tools").json()["tools"]

        assert len(tools) == 8
        calculator = tools[0]
        assert calculator["name"] == "calculator"
        assert calculator["parameterSchema"]["required"] == ["expression"]

    def test_invokes_tool(self, client_for):
        response = client_for(scripted_model()).post("/tools/calculator", json={"args": {"expression": "2+3"}})

        assert response.json() == {"name": "calculator", "result": "Result: 5"}

    def test_invalid_arguments_are_a_tool_result(self, client_for):
        response = client_for(scripted_model()).post("/tools/echo", json={"args": {}})

        assert response.status_code == 200
        assert response.json()["result"] == "Error: Invalid arguments for tool 'echo': missing required argument 'text'"

    def test_unknown_tool(self, client_for):
        response = client_for(scripted_model()).post("/tools/nonexistent_tool", json={"args": {}})

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "TOOL_NF_001"
        assert body["error"] == "Tool 'nonexistent_tool' not found"


class TestProviderDefault:
    def test_omitted_provider_uses_server_default(self, make_runtime, settings):
        local_settings = settings.model_copy(update={"default_model_provider": "local"})
        runtime, factory = make_runtime(scripted_model("ok"), runtime_settings=local_settings)

        with TestClient(create_app(runtime)) as client:
            body = client.post("/langgraph", json={"message": "hi", "modelConfig": {"temperature": 0.3}}).json()

        assert body["model"] == {"provider": "local", "temperature": 0.3}
        assert factory.configs[0].provider == "local"
