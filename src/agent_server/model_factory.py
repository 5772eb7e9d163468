"""Chat-model construction for the two supported backends."""

from __future__ import annotations

import logging
from typing import Any, Callable, Literal, Mapping

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import Runnable
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field

from .config import Settings
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


class ModelConfig(BaseModel):
    """Per-turn model selection. Never persisted."""

    model_config = ConfigDict(
        populate_by_name=True, extra="forbid", frozen=True, protected_namespaces=()
    )

    provider: Literal["primary", "local"] = "primary"
    model_name: str | None = Field(default=None, alias="modelName")
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)


ModelFactory = Callable[[ModelConfig, Settings], BaseChatModel]


def resolve_model_config(raw: ModelConfig | Mapping[str, Any] | None, settings: Settings) -> ModelConfig:
    """Return a ``ModelConfig``, defaulting the provider from settings."""

    if isinstance(raw, ModelConfig):
        return raw
    data = dict(raw or {})
    if "provider" not in data:
        data["provider"] = settings.default_model_provider
    return ModelConfig.model_validate(data)


def create_model(config: ModelConfig, settings: Settings) -> BaseChatModel:
    """Instantiate a chat client for ``config``.

    Construction performs no network I/O; connection and auth failures only
    surface when the client is invoked.
    """

    temperature = settings.default_temperature if config.temperature is None else config.temperature

    if config.provider == "local":
        model = config.model_name or settings.local_llm_model
        logger.info("[MODEL] Local model %s at %s", model, settings.local_llm_base_url)
        return ChatOpenAI(
            model=model,
            base_url=settings.local_llm_base_url,
            # Local servers do not check the key, but the client requires one
            api_key=settings.local_llm_api_key,
            temperature=temperature,
            timeout=settings.model_timeout_seconds,
            max_retries=2,
        )

    model = config.model_name or settings.gemini_model
    logger.info("[MODEL] Primary model %s", model)
    extra: dict[str, Any] = {}
    if settings.google_api_key:
        extra["api_key"] = settings.google_api_key
    return ChatGoogleGenerativeAI(
        model=model,
        temperature=temperature,
        timeout=settings.model_timeout_seconds,
        max_retries=2,
        **extra,
    )


def bind_registry_tools(model: BaseChatModel, registry: ToolRegistry) -> Runnable:
    """Attach every registry tool as a callable function on ``model``."""

    schemas = registry.function_schemas()
    if not schemas:
        return model
    return model.bind_tools(schemas)
