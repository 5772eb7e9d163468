from __future__ import annotations

from functools import partial
from typing import Any

from .coingecko import CoinGeckoClient, upper_symbol
from .registry import ParamSpec, ToolSpec

MAX_RESULTS = 20


def search_coins(client: CoinGeckoClient, query: str) -> dict[str, Any] | str:
    try:
        data = client.get("/search", {"query": query})
    except Exception as exc:
        return f"Error searching coins: {exc}"

    coins = data.get("coins") if isinstance(data, dict) else None
    coins = coins if isinstance(coins, list) else []
    results = [
        {
            "id": coin.get("id"),
            "name": coin.get("name"),
            "symbol": upper_symbol(coin.get("symbol")),
            "thumb": coin.get("thumb"),
            "market_cap_rank": coin.get("market_cap_rank"),
        }
        for coin in coins[:MAX_RESULTS]
    ]
    return {"query": query, "results": results, "total_results": len(results)}


def search_coins_tool(client: CoinGeckoClient) -> ToolSpec:
    return ToolSpec(
        name="search_coins",
        description="Search for cryptocurrencies by name or symbol on CoinGecko.",
        parameters=(ParamSpec(name="query", kind="string", description="Search query (coin name or symbol)"),),
        execute=partial(search_coins, client),
    )
