from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the agent server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Provider used when a turn does not carry its own model configuration
    default_model_provider: Literal["primary", "local"] = Field(
        default="primary", alias="DEFAULT_MODEL_PROVIDER"
    )
    default_temperature: float = Field(default=0.7, ge=0.0, le=1.0, alias="DEFAULT_TEMPERATURE")

    # Hosted (primary) backend
    google_api_key: str | None = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")

    # Local OpenAI-compatible backend (LM Studio, llama.cpp server, vLLM, ...)
    local_llm_base_url: str = Field(default="http://localhost:1234/v1", alias="LM_STUDIO_BASE_URL")
    local_llm_api_key: str = Field(default="lm-studio", alias="LM_STUDIO_API_KEY")
    local_llm_model: str = Field(default="qwen/qwen3-vl-30b", alias="LM_STUDIO_MODEL")

    # Checkpointer selection; unknown values fall back to "memory" with a warning
    agent_memory_type: str = Field(default="memory", alias="AGENT_MEMORY_TYPE")
    checkpoint_dir: str = Field(default="data/checkpoints", alias="CHECKPOINT_DIR")

    # Upper bounds for the two suspension points of a turn
    model_timeout_seconds: float = Field(default=60.0, gt=0, alias="MODEL_TIMEOUT_SECONDS")
    tool_timeout_seconds: float = Field(default=20.0, gt=0, alias="TOOL_TIMEOUT_SECONDS")
    # Graph super-steps allowed per turn (each model call and each dispatch is one)
    recursion_limit: int = Field(default=25, ge=2, alias="AGENT_RECURSION_LIMIT")

    # Market-data tools
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3", alias="COINGECKO_BASE_URL"
    )
    coingecko_api_key: str | None = Field(default=None, alias="COINGECKO_API_KEY")

    # Optional override for the synthesized system prompt
    system_prompt: str | None = Field(default=None, alias="SYSTEM_PROMPT")

    # FastAPI configuration
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8080, alias="APP_PORT")
    debug: bool = Field(default=False, alias="DEBUG")


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so multiple imports share a single instance."""

    return Settings()  # type: ignore[call-arg]
