from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Literal

from langchain_core.messages import SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, MessagesState, StateGraph

from .errors import ModelInvocationError, NoResponseError
from .model_factory import bind_registry_tools, resolve_model_config

if TYPE_CHECKING:
    from .runtime import AgentRuntime

logger = logging.getLogger(__name__)


def should_continue(state: MessagesState) -> Literal["continue", "end"]:
    """Route to tool dispatch only when the last message is an AI message with tool calls."""

    messages = state.get("messages") or []
    if not messages:
        return "end"
    last_message = messages[-1]
    if last_message.type == "ai" and getattr(last_message, "tool_calls", None):
        return "continue"
    return "end"


def create_graph(runtime: AgentRuntime):
    settings = runtime.settings
    registry = runtime.registry
    system_message = SystemMessage(content=runtime.system_prompt)

    async def call_model(state: MessagesState, config: RunnableConfig):
        configurable = config.get("configurable", {})
        model_config = resolve_model_config(configurable.get("model_config"), settings)

        try:
            model = bind_registry_tools(runtime.model_factory(model_config, settings), registry)
        except Exception as exc:
            logger.exception("[AGENT] Failed to create %s model", model_config.provider)
            raise ModelInvocationError(f"Failed to create model: {exc}") from exc

        messages = list(state["messages"])
        # Attached to the request only, never written back to the thread
        if not any(message.type == "system" for message in messages):
            messages = [system_message] + messages

        logger.info(
            "[AGENT] Invoking %s model with %d message(s)", model_config.provider, len(messages)
        )
        try:
            response = await asyncio.wait_for(
                model.ainvoke(messages, config=config),
                timeout=settings.model_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("[AGENT] Model call timed out after %ss", settings.model_timeout_seconds)
            raise ModelInvocationError(
                f"Model did not respond within {settings.model_timeout_seconds:g}s",
                code="LGR_NET_001",
            ) from exc
        except Exception as exc:
            logger.exception("[AGENT] Model invocation failed")
            raise ModelInvocationError(str(exc) or type(exc).__name__) from exc

        if getattr(response, "type", None) != "ai":
            raise NoResponseError(details={"responseType": type(response).__name__})

        logger.info("[AGENT] Model requested %d tool call(s)", len(response.tool_calls))
        return {"messages": [response]}

    async def call_tool(state: MessagesState):
        last_message = state["messages"][-1]
        tool_calls = list(getattr(last_message, "tool_calls", None) or [])
        logger.info("[AGENT] Dispatching %d tool call(s)", len(tool_calls))

        # Calls run concurrently; results keep request order
        observations = await asyncio.gather(
            *(
                registry.run(call["name"], call.get("args"), timeout=settings.tool_timeout_seconds)
                for call in tool_calls
            )
        )
        return {
            "messages": [
                ToolMessage(content=observation, tool_call_id=call["id"], name=call["name"])
                for call, observation in zip(tool_calls, observations)
            ]
        }

    workflow = StateGraph(MessagesState)
    workflow.add_node("agent", call_model)
    workflow.add_node("tools", call_tool)
    workflow.add_edge(START, "agent")
    workflow.add_conditional_edges("agent", should_continue, {"continue": "tools", "end": END})
    workflow.add_edge("tools", "agent")

    return workflow.compile(checkpointer=runtime.checkpointer)
