"""Shared test helpers: a scripted chat model and HTTP response stubs."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langgraph.checkpoint.memory import InMemorySaver
from pydantic import Field


class ScriptedChatModel(GenericFakeChatModel):
    """Replays scripted replies and records the history sent on every call.

    ``fail_on_call`` (1-based) makes that call raise instead of answering.
    """

    received: list[list[BaseMessage]] = Field(default_factory=list)
    bound_tools: list[Any] = Field(default_factory=list)
    fail_on_call: int | None = None
    error_message: str = "provider unreachable"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.received.append(list(messages))
        if self.fail_on_call == len(self.received):
            raise RuntimeError(self.error_message)
        return super()._generate(messages, stop=stop, run_manager=run_manager, **kwargs)


class SlowChatModel(ScriptedChatModel):
    """Sleeps before answering so callers can exercise their timeout."""

    delay: float = 1.0

    async def _agenerate(self, messages, stop=None, run_manager=None, **kwargs):
        await asyncio.sleep(self.delay)
        return self._generate(messages, stop=stop, **kwargs)


def scripted_model(*replies: AIMessage | str, **kwargs) -> ScriptedChatModel:
    return ScriptedChatModel(messages=iter(replies), **kwargs)


def tool_call_message(*calls: tuple[str, dict[str, Any]], content: str = "") -> AIMessage:
    """AI message requesting ``calls`` as (name, args) pairs, ids call_1..call_n."""
    return AIMessage(
        content=content,
        tool_calls=[
            {"name": name, "args": args, "id": f"call_{index}", "type": "tool_call"}
            for index, (name, args) in enumerate(calls, start=1)
        ],
    )


class RecordingFactory:
    """Model factory returning a fixed model and remembering every config it saw."""

    def __init__(self, model):
        self.model = model
        self.configs = []

    def __call__(self, config, settings):
        self.configs.append(config)
        return self.model


class UnreadableSaver(InMemorySaver):
    """Checkpointer whose storage cannot be read."""

    def get_tuple(self, config):
        raise OSError("checkpoint storage unavailable")

    async def aget_tuple(self, config):
        raise OSError("checkpoint storage unavailable")


def mock_http_response(payload: Any = None, status_code: int = 200, reason_phrase: str = "OK") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason_phrase = reason_phrase
    response.json.return_value = payload
    return response
