from __future__ import annotations

import json
import logging
from typing import Iterable

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from langchain_core.messages import BaseMessage

from .errors import ERROR_CATALOG, AgentServerError, ToolNotFoundError
from .runtime import AgentRuntime
from .schemas import (
    AgentInfoResponse,
    HealthResponse,
    MessageEnvelope,
    ThreadMessagesResponse,
    ToolCallEnvelope,
    ToolInvokeRequest,
    ToolInvokeResponse,
    ToolManifest,
    ToolsResponse,
    TurnRequest,
    TurnResponse,
)

router = APIRouter()

logger = logging.getLogger(__name__)

_ROLES = {"human": "user", "ai": "assistant", "system": "system", "tool": "tool"}


def get_runtime(request: Request) -> AgentRuntime:
    return request.app.state.runtime


def _coerce_content(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _as_envelopes(messages: Iterable[BaseMessage]) -> list[MessageEnvelope]:
    envelopes: list[MessageEnvelope] = []
    for message in messages:
        role = _ROLES.get(message.type)
        if role is None:
            logger.warning("[API] Skipping message of unknown type: %s", message.type)
            continue
        envelope = MessageEnvelope(role=role, content=_coerce_content(message.content))
        if message.type == "tool":
            envelope.tool_call_id = message.tool_call_id
            envelope.name = message.name
        elif message.type == "ai" and message.tool_calls:
            envelope.tool_calls = [
                ToolCallEnvelope(id=call.get("id"), name=call["name"], args=call.get("args") or {})
                for call in message.tool_calls
            ]
        envelopes.append(envelope)
    return envelopes


@router.get("/healthz", response_model=HealthResponse)
def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get("/langgraph", response_model=AgentInfoResponse)
def agent_info() -> AgentInfoResponse:
    return AgentInfoResponse()


@router.post("/langgraph", response_model=TurnResponse, response_model_exclude_none=True)
async def run_turn(payload: TurnRequest, runtime: AgentRuntime = Depends(get_runtime)):
    # Unset fields stay unset; an omitted provider resolves to the server default
    model_config = payload.llm_config.model_dump(exclude_unset=True) if payload.llm_config else None
    result = await runtime.run_turn(
        payload.message,
        thread_id=payload.thread_id,
        model_config=model_config,
    )
    return TurnResponse(
        response=result.response,
        thread_id=result.thread_id,
        model=result.model,
        messages=_as_envelopes(result.messages),
    )


@router.get(
    "/threads/{thread_id}/messages",
    response_model=ThreadMessagesResponse,
    response_model_exclude_none=True,
)
async def thread_messages(thread_id: str, runtime: AgentRuntime = Depends(get_runtime)):
    messages = await runtime.load_messages(thread_id)
    return ThreadMessagesResponse(thread_id=thread_id, messages=_as_envelopes(messages))


@router.get("/tools", response_model=ToolsResponse)
def list_tools(runtime: AgentRuntime = Depends(get_runtime)) -> ToolsResponse:
    return ToolsResponse(tools=[ToolManifest(**spec.manifest()) for spec in runtime.registry])


@router.post("/tools/{name}", response_model=ToolInvokeResponse)
async def invoke_tool(
    name: str,
    payload: ToolInvokeRequest,
    runtime: AgentRuntime = Depends(get_runtime),
) -> ToolInvokeResponse:
    if name not in runtime.registry:
        raise ToolNotFoundError(f"Tool '{name}' not found", details={"name": name})
    result = await runtime.registry.run(
        name, payload.args, timeout=runtime.settings.tool_timeout_seconds
    )
    return ToolInvokeResponse(name=name, result=result)


async def agent_error_handler(request: Request, exc: AgentServerError) -> JSONResponse:
    logger.warning("[API] %s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map body validation failures onto the catalog codes."""

    errors = exc.errors()
    fields = {str(part) for error in errors for part in error.get("loc", ())}
    if "modelConfig" in fields:
        code = "LGR_CFG_001"
    elif "threadId" in fields:
        code = "LGR_VAL_002"
    else:
        code = "LGR_VAL_001"
    error = AgentServerError(ERROR_CATALOG[code].message, code=code, details=errors)
    return await agent_error_handler(request, error)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "[API] Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    error = AgentServerError(str(exc) or type(exc).__name__, details={"type": type(exc).__name__})
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_payload()))
