from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .model_factory import ModelConfig


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolCallEnvelope(CamelModel):
    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class MessageEnvelope(CamelModel):
    """Serializable message payload."""

    role: Literal["user", "assistant", "system", "tool"]
    content: str
    tool_call_id: str | None = None
    name: str | None = None
    tool_calls: list[ToolCallEnvelope] | None = None


class TurnRequest(CamelModel):
    message: str
    thread_id: str | None = None
    llm_config: ModelConfig | None = Field(default=None, alias="modelConfig")


class TurnResponse(CamelModel):
    response: str
    thread_id: str
    model: ModelConfig
    messages: list[MessageEnvelope]


class ThreadMessagesResponse(CamelModel):
    thread_id: str
    messages: list[MessageEnvelope]


class ToolManifest(CamelModel):
    name: str
    description: str
    parameter_schema: dict[str, Any]


class ToolsResponse(CamelModel):
    tools: list[ToolManifest]


class ToolInvokeRequest(CamelModel):
    args: dict[str, Any] = Field(default_factory=dict)


class ToolInvokeResponse(CamelModel):
    name: str
    result: str


class AgentInfoResponse(BaseModel):
    status: str = "ok"
    agent: str = "LangGraph Agent"
    version: str = __version__


class HealthResponse(BaseModel):
    status: str = "ok"
