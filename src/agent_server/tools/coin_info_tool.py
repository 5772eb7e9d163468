from __future__ import annotations

from functools import partial
from typing import Any
from urllib.parse import quote

from .coingecko import CoinGeckoClient, upper_symbol
from .registry import ParamSpec, ToolSpec

_PROFILE_SCORES = (
    "sentiment_votes_up_percentage",
    "sentiment_votes_down_percentage",
    "market_cap_rank",
    "coingecko_rank",
    "coingecko_score",
    "developer_score",
    "community_score",
    "liquidity_score",
    "public_interest_score",
)

_MARKET_FIELDS = (
    "current_price",
    "market_cap",
    "fully_diluted_valuation",
    "total_volume",
    "high_24h",
    "low_24h",
    "price_change_24h",
    "price_change_percentage_24h",
    "price_change_percentage_7d",
    "price_change_percentage_14d",
    "price_change_percentage_30d",
    "price_change_percentage_60d",
    "price_change_percentage_200d",
    "price_change_percentage_1y",
    "market_cap_change_24h",
    "market_cap_change_percentage_24h",
    "circulating_supply",
    "total_supply",
    "max_supply",
    "ath",
    "ath_change_percentage",
    "ath_date",
    "atl",
    "atl_change_percentage",
    "atl_date",
    "last_updated",
)


def _first_link(links: Any, key: str) -> str | None:
    if not isinstance(links, dict):
        return None
    values = links.get(key)
    if isinstance(values, list) and values:
        return values[0]
    return None


def get_coin_info(
    client: CoinGeckoClient,
    id: str,
    localization: bool = False,
    tickers: bool = False,
    market_data: bool = True,
    community_data: bool = False,
    developer_data: bool = False,
    sparkline: bool = False,
) -> dict[str, Any] | str:
    try:
        data = client.get(
            f"/coins/{quote(id.strip(), safe='')}",
            {
                "localization": localization,
                "tickers": tickers,
                "market_data": market_data,
                "community_data": community_data,
                "developer_data": developer_data,
                "sparkline": sparkline,
            },
        )
    except Exception as exc:
        return f"Error fetching coin information: {exc}"

    if not isinstance(data, dict):
        return "Error fetching coin information: unexpected response shape"

    description = data.get("description")
    links = data.get("links")
    info: dict[str, Any] = {
        "id": data.get("id"),
        "symbol": upper_symbol(data.get("symbol")),
        "name": data.get("name"),
        "description": (
            description.get("en") if isinstance(description, dict) and description.get("en")
            else "No description available"
        ),
        "homepage": _first_link(links, "homepage"),
        "blockchain_site": _first_link(links, "blockchain_site"),
        "genesis_date": data.get("genesis_date") or None,
    }
    info.update({field: data.get(field) or None for field in _PROFILE_SCORES})

    market = data.get("market_data")
    if market_data and isinstance(market, dict):
        info["market_data"] = {field: market.get(field) for field in _MARKET_FIELDS}

    return info


def coin_info_tool(client: CoinGeckoClient) -> ToolSpec:
    return ToolSpec(
        name="get_coin_info",
        description=(
            "Get detailed information about a specific cryptocurrency including "
            "market data, description, and links."
        ),
        parameters=(
            ParamSpec(name="id", kind="string", description="CoinGecko coin ID (e.g., 'bitcoin', 'ethereum')"),
            ParamSpec(
                name="localization",
                kind="boolean",
                description="Include localized descriptions",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="tickers",
                kind="boolean",
                description="Include ticker data",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="market_data",
                kind="boolean",
                description="Include market data",
                required=False,
                default=True,
            ),
            ParamSpec(
                name="community_data",
                kind="boolean",
                description="Include community data",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="developer_data",
                kind="boolean",
                description="Include developer data",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="sparkline",
                kind="boolean",
                description="Include sparkline data",
                required=False,
                default=False,
            ),
        ),
        execute=partial(get_coin_info, client),
    )
