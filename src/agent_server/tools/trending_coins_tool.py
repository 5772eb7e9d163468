from __future__ import annotations

from functools import partial
from typing import Any

from .coingecko import CoinGeckoClient, upper_symbol
from .registry import ToolSpec


def get_trending_coins(client: CoinGeckoClient) -> dict[str, Any] | str:
    """Top trending coins from /search/trending, ranked in CoinGecko's order."""

    try:
        data = client.get("/search/trending")
    except Exception as exc:
        return f"Error fetching trending coins: {exc}"

    coins = data.get("coins") if isinstance(data, dict) else None
    trending: list[dict[str, Any]] = []
    for coin in coins if isinstance(coins, list) else []:
        item = coin.get("item") if isinstance(coin, dict) else None
        if not isinstance(item, dict):
            continue
        trending.append(
            {
                "rank": len(trending) + 1,
                "name": item.get("name"),
                "symbol": upper_symbol(item.get("symbol")),
                "id": item.get("id"),
                "thumb": item.get("thumb"),
                "market_cap_rank": item.get("market_cap_rank"),
            }
        )

    return {"trending_coins": trending, "total_count": len(trending)}


def trending_coins_tool(client: CoinGeckoClient) -> ToolSpec:
    return ToolSpec(
        name="get_trending_coins",
        description="Get the top trending cryptocurrencies from CoinGecko API.",
        parameters=(),
        execute=partial(get_trending_coins, client),
    )
