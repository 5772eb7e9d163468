"""Tool returning spot prices for one or more coins (CoinGecko /simple/price)."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any

from .coingecko import CoinGeckoClient
from .registry import ParamSpec, ToolSpec

logger = logging.getLogger(__name__)

_QUOTE_CURRENCIES = ("usd", "eur", "btc")


def get_crypto_prices(
    client: CoinGeckoClient,
    ids: str,
    vs_currencies: str = "usd",
    include_market_cap: bool = False,
    include_24hr_change: bool = False,
    include_24hr_volume: bool = False,
) -> list[dict[str, Any]] | str:
    try:
        data = client.get(
            "/simple/price",
            {
                "ids": ids,
                "vs_currencies": vs_currencies,
                "include_market_cap": include_market_cap,
                "include_24hr_change": include_24hr_change,
                "include_24hr_vol": include_24hr_volume,
            },
        )
    except Exception as exc:
        return f"Error fetching crypto prices: {exc}"

    if not isinstance(data, dict):
        return "Error fetching crypto prices: unexpected response shape"

    prices: list[dict[str, Any]] = []
    for coin_id, quote in data.items():
        entry: dict[str, Any] = {"coin": coin_id}
        if isinstance(quote, dict):
            for currency in _QUOTE_CURRENCIES:
                if currency in quote:
                    entry[currency] = quote[currency]
            if include_market_cap and "usd_market_cap" in quote:
                entry["market_cap_usd"] = quote["usd_market_cap"]
            if include_24hr_change and "usd_24h_change" in quote:
                entry["change_24h_percent"] = quote["usd_24h_change"]
            if include_24hr_volume and "usd_24h_vol" in quote:
                entry["volume_24h_usd"] = quote["usd_24h_vol"]
        prices.append(entry)

    logger.info("[COINGECKO] Formatted prices for %d coin(s)", len(prices))
    return prices


def crypto_prices_tool(client: CoinGeckoClient) -> ToolSpec:
    return ToolSpec(
        name="get_crypto_prices",
        description=(
            "Get current prices for cryptocurrencies from CoinGecko API. "
            "Supports multiple coins and currencies."
        ),
        parameters=(
            ParamSpec(
                name="ids",
                kind="string",
                description="Comma-separated list of cryptocurrency IDs (e.g., 'bitcoin,ethereum,cardano')",
            ),
            ParamSpec(
                name="vs_currencies",
                kind="string",
                description="Comma-separated target currencies (e.g., 'usd,eur,btc')",
                required=False,
                default="usd",
            ),
            ParamSpec(
                name="include_market_cap",
                kind="boolean",
                description="Include market capitalization data",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="include_24hr_change",
                kind="boolean",
                description="Include 24-hour price change percentage",
                required=False,
                default=False,
            ),
            ParamSpec(
                name="include_24hr_volume",
                kind="boolean",
                description="Include 24-hour trading volume",
                required=False,
                default=False,
            ),
        ),
        execute=partial(get_crypto_prices, client),
    )
