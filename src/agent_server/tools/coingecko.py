"""Thin httpx wrapper around the public CoinGecko REST API.

API documentation: https://www.coingecko.com/en/api
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoError(RuntimeError):
    """Raised when CoinGecko answers with a non-2xx status or an unreadable body."""


def _flag(value: bool) -> str:
    return "true" if value else "false"


def upper_symbol(value: Any) -> str:
    return value.upper() if isinstance(value, str) else "UNKNOWN"


class CoinGeckoClient:
    """Performs a single GET per call; shared read-only by all market-data tools."""

    def __init__(
        self,
        base_url: str = COINGECKO_BASE_URL,
        *,
        api_key: str | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        endpoint = f"{self.base_url}/{path.lstrip('/')}"
        query = {
            key: _flag(value) if isinstance(value, bool) else value
            for key, value in (params or {}).items()
        }
        logger.info("[COINGECKO] GET %s params=%s", endpoint, query)
        response = httpx.get(endpoint, params=query, headers=self._headers(), timeout=self.timeout)
        if response.status_code != 200:
            logger.warning("[COINGECKO] %s returned HTTP %s", endpoint, response.status_code)
            raise CoinGeckoError(
                f"CoinGecko API error: {response.status_code} {response.reason_phrase}".rstrip()
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CoinGeckoError(f"Invalid response from CoinGecko: {exc}") from exc
