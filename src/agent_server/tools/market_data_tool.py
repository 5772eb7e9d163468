from __future__ import annotations

from functools import partial
from typing import Any

from .coingecko import CoinGeckoClient, upper_symbol
from .registry import ParamSpec, ToolSpec

MARKET_ORDERS = (
    "market_cap_desc",
    "market_cap_asc",
    "volume_desc",
    "volume_asc",
    "id_asc",
    "id_desc",
)

MAX_PER_PAGE = 250

_MARKET_FIELDS = (
    "current_price",
    "market_cap",
    "market_cap_rank",
    "fully_diluted_valuation",
    "total_volume",
    "high_24h",
    "low_24h",
    "price_change_24h",
    "price_change_percentage_24h",
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


def get_market_data(
    client: CoinGeckoClient,
    vs_currency: str = "usd",
    order: str = "market_cap_desc",
    per_page: float = 10,
    page: float = 1,
    sparkline: bool = False,
    price_change_percentage: str = "1h,24h,7d",
) -> dict[str, Any] | str:
    try:
        per_page = min(max(int(per_page), 1), MAX_PER_PAGE)
        page = max(int(page), 1)
        data = client.get(
            "/coins/markets",
            {
                "vs_currency": vs_currency,
                "order": order,
                "per_page": per_page,
                "page": page,
                "sparkline": sparkline,
                "price_change_percentage": price_change_percentage,
            },
        )
    except Exception as exc:
        return f"Error fetching market data: {exc}"

    if not isinstance(data, list):
        return "Error fetching market data: unexpected response shape"

    market_data = []
    for coin in data:
        if not isinstance(coin, dict):
            continue
        entry: dict[str, Any] = {
            "id": coin.get("id"),
            "symbol": upper_symbol(coin.get("symbol")),
            "name": coin.get("name"),
            "image": coin.get("image"),
        }
        entry.update({field: coin.get(field) for field in _MARKET_FIELDS})
        market_data.append(entry)

    return {
        "market_data": market_data,
        "count": len(market_data),
        "page": page,
        "per_page": per_page,
    }


def market_data_tool(client: CoinGeckoClient) -> ToolSpec:
    return ToolSpec(
        name="get_market_data",
        description=(
            "Get comprehensive market data for cryptocurrencies including prices, "
            "market cap, volume, and price changes."
        ),
        parameters=(
            ParamSpec(
                name="vs_currency",
                kind="string",
                description="Target currency (e.g., 'usd', 'eur', 'btc')",
                required=False,
                default="usd",
            ),
            ParamSpec(
                name="order",
                kind="enum",
                description="Sort order of the results",
                required=False,
                default="market_cap_desc",
                choices=MARKET_ORDERS,
            ),
            ParamSpec(
                name="per_page",
                kind="number",
                description=f"Number of results per page (max {MAX_PER_PAGE})",
                required=False,
                default=10,
            ),
            ParamSpec(
                name="page",
                kind="number",
                description="Page number",
                required=False,
                default=1,
            ),
            ParamSpec(
                name="sparkline",
                kind="boolean",
                description="Include sparkline data (7 days)",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="price_change_percentage",
                kind="string",
                description="Price change percentages to include (comma-separated)",
                required=False,
                default="1h,24h,7d",
            ),
        ),
        execute=partial(get_market_data, client),
    )
