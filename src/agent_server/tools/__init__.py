"""Tool registry for the agent server."""

from __future__ import annotations

from ..config import Settings
from .calculator_tool import calculator_tool
from .coin_info_tool import coin_info_tool
from .coingecko import CoinGeckoClient
from .crypto_prices_tool import crypto_prices_tool
from .echo_tool import echo_tool
from .market_data_tool import market_data_tool
from .registry import ParamSpec, ToolArgumentError, ToolRegistry, ToolSpec
from .research_tool import research_tool
from .search_coins_tool import search_coins_tool
from .trending_coins_tool import trending_coins_tool


def build_tool_registry(settings: Settings) -> ToolRegistry:
    """Assemble every tool available to the agent."""

    coingecko = CoinGeckoClient(
        settings.coingecko_base_url,
        api_key=settings.coingecko_api_key,
        timeout=settings.tool_timeout_seconds,
    )
    return ToolRegistry(
        (
            calculator_tool,
            echo_tool,
            research_tool,
            crypto_prices_tool(coingecko),
            trending_coins_tool(coingecko),
            market_data_tool(coingecko),
            coin_info_tool(coingecko),
            search_coins_tool(coingecko),
        )
    )


__all__ = [
    "ParamSpec",
    "ToolArgumentError",
    "ToolRegistry",
    "ToolSpec",
    "build_tool_registry",
]
