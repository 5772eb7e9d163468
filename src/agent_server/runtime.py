"""Turn execution on top of the compiled agent graph.

``AgentRuntime`` is built once at startup and owns everything a turn needs:
settings, the tool registry, the checkpointer, the model factory and the
compiled graph. Turns on the same thread are serialized; a failed turn is
rolled back so the thread only ever shows completed turns.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping

from langchain_core.messages import BaseMessage, HumanMessage, RemoveMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.errors import GraphRecursionError
from pydantic import ValidationError

from .agent import create_graph
from .checkpoint import create_checkpointer
from .config import Settings, get_settings
from .errors import AgentServerError, ModelInvocationError, NoResponseError, ValidationFailed
from .model_factory import ModelConfig, ModelFactory, create_model, resolve_model_config
from .prompts import get_system_prompt
from .tools import ToolRegistry, build_tool_registry

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def new_thread_id() -> str:
    """Return ``thread-<epoch ms>-<7 base36 chars>``."""

    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"thread-{int(time.time() * 1000)}-{suffix}"


def extract_text_from_content(content: Any) -> str:
    """Flatten message content (plain string or list of parts) to text."""

    if isinstance(content, str):
        return content
    if isinstance(content, list):
        text_parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text_parts.append(block.get("text", ""))
            elif isinstance(block, str):
                text_parts.append(block)
        return "\n".join(text_parts)
    return ""


@dataclass
class TurnResult:
    response: str
    thread_id: str
    model: ModelConfig
    messages: list[BaseMessage] = field(default_factory=list)


class AgentRuntime:
    def __init__(
        self,
        settings: Settings,
        registry: ToolRegistry,
        checkpointer: BaseCheckpointSaver,
        model_factory: ModelFactory = create_model,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.checkpointer = checkpointer
        self.model_factory = model_factory
        self.system_prompt = get_system_prompt(registry, override=settings.system_prompt)
        self.graph = create_graph(self)
        self._thread_locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        model_factory: ModelFactory = create_model,
    ) -> AgentRuntime:
        resolved = settings or get_settings()
        registry = build_tool_registry(resolved)
        logger.info("[AGENT] Registered %d tools: %s", len(registry), ", ".join(registry.names()))
        return cls(resolved, registry, create_checkpointer(resolved), model_factory)

    def _config(self, thread_id: str, model_config: ModelConfig | None = None) -> RunnableConfig:
        configurable: dict[str, Any] = {"thread_id": thread_id}
        if model_config is not None:
            # Plain dict so checkpoint metadata stays serializable
            configurable["model_config"] = model_config.model_dump()
        return {"configurable": configurable, "recursion_limit": self.settings.recursion_limit}

    @asynccontextmanager
    async def _serialized(self, thread_id: str) -> AsyncIterator[None]:
        """Hold the per-thread lock; it is dropped once no turn holds or awaits it."""

        lock = self._thread_locks.get(thread_id)
        if lock is None:
            lock = self._thread_locks[thread_id] = asyncio.Lock()
        self._lock_holders[thread_id] = self._lock_holders.get(thread_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[thread_id] -= 1
            if not self._lock_holders[thread_id]:
                del self._lock_holders[thread_id]
                del self._thread_locks[thread_id]

    async def load_messages(self, thread_id: str) -> list[BaseMessage]:
        """Return the persisted history of ``thread_id``; empty for an unseen thread."""

        snapshot = await self.graph.aget_state(self._config(thread_id))
        return list((snapshot.values or {}).get("messages", []))

    async def _rollback(self, thread_id: str, keep_ids: set[str]) -> None:
        config = self._config(thread_id)
        try:
            current = await self.load_messages(thread_id)
            stale = [RemoveMessage(id=message.id) for message in current if message.id not in keep_ids]
            if not stale:
                return
            await self.graph.aupdate_state(config, {"messages": stale}, as_node="agent")
            logger.info("[AGENT] Rolled back %d message(s) on thread %s", len(stale), thread_id)
        except Exception:
            logger.exception("[AGENT] Failed to roll back thread %s", thread_id)

    async def run_turn(
        self,
        message: str,
        thread_id: str | None = None,
        model_config: ModelConfig | Mapping[str, Any] | None = None,
    ) -> TurnResult:
        """Run one user turn to completion and return the final assistant reply."""

        if not isinstance(message, str) or not message.strip():
            raise ValidationFailed(
                "Message is required and must be a non-empty string",
                details={"field": "message"},
            )
        if thread_id is not None and (not isinstance(thread_id, str) or not thread_id.strip()):
            raise ValidationFailed(code="LGR_VAL_002", details={"field": "threadId"})

        try:
            resolved_model = resolve_model_config(model_config, self.settings)
        except ValidationError as exc:
            raise AgentServerError(
                code="LGR_CFG_001",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

        thread_id = thread_id or new_thread_id()
        config = self._config(thread_id, resolved_model)

        async with self._serialized(thread_id):
            try:
                previous = await self.load_messages(thread_id)
            except Exception as exc:
                logger.exception("[AGENT] Failed to load thread %s", thread_id)
                raise ModelInvocationError(f"Failed to load thread history: {exc}") from exc
            logger.info(
                "[AGENT] Turn on thread %s (%d prior message(s), provider=%s)",
                thread_id,
                len(previous),
                resolved_model.provider,
            )
            try:
                state = await self.graph.ainvoke(
                    {"messages": [HumanMessage(content=message)]}, config=config
                )
                messages = list(state.get("messages", []))
                if not messages or messages[-1].type != "ai":
                    raise NoResponseError()
            except Exception as exc:
                await self._rollback(thread_id, {m.id for m in previous})
                if isinstance(exc, AgentServerError):
                    raise
                if isinstance(exc, GraphRecursionError):
                    raise ModelInvocationError(
                        f"Agent did not finish within {self.settings.recursion_limit} steps"
                    ) from exc
                logger.exception("[AGENT] Turn failed on thread %s", thread_id)
                raise ModelInvocationError(str(exc) or type(exc).__name__) from exc

        response = extract_text_from_content(messages[-1].content)
        logger.info("[AGENT] Turn complete on thread %s: %s", thread_id, response[:200])
        return TurnResult(
            response=response,
            thread_id=thread_id,
            model=resolved_model,
            messages=messages,
        )
