"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest
from langgraph.checkpoint.memory import InMemorySaver

from agent_server.config import Settings
from agent_server.runtime import AgentRuntime
from agent_server.tools import build_tool_registry

from tests.helpers import RecordingFactory


@pytest.fixture
def settings(tmp_path):
    """Isolated settings: no .env file, short timeouts, in-memory checkpoints."""
    return Settings(
        _env_file=None,
        DEFAULT_MODEL_PROVIDER="primary",
        GOOGLE_API_KEY="test-key",
        AGENT_MEMORY_TYPE="memory",
        CHECKPOINT_DIR=str(tmp_path / "checkpoints"),
        MODEL_TIMEOUT_SECONDS=5,
        TOOL_TIMEOUT_SECONDS=2,
        COINGECKO_API_KEY=None,
        SYSTEM_PROMPT=None,
    )


@pytest.fixture
def registry(settings):
    return build_tool_registry(settings)


@pytest.fixture
def make_runtime(settings, registry):
    """Build an AgentRuntime around a scripted chat model.

    Usage: runtime, factory = make_runtime(model)
    """

    def _make(model, *, checkpointer=None, runtime_settings=None, tool_registry=None):
        factory = RecordingFactory(model)
        runtime = AgentRuntime(
            runtime_settings or settings,
            tool_registry or registry,
            checkpointer or InMemorySaver(),
            model_factory=factory,
        )
        return runtime, factory

    return _make


@pytest.fixture
def sample_simple_price():
    """CoinGecko /simple/price payload."""
    return {
        "bitcoin": {
            "usd": 67250.12,
            "eur": 61890.4,
            "usd_market_cap": 1324000000000.5,
            "usd_24h_change": 2.31,
            "usd_24h_vol": 28500000000.0,
        },
        "ethereum": {"usd": 3480.55, "eur": 3202.1},
    }


@pytest.fixture
def sample_trending():
    """CoinGecko /search/trending payload."""
    return {
        "coins": [
            {
                "item": {
                    "id": "pepe",
                    "name": "Pepe",
                    "symbol": "pepe",
                    "thumb": "https://assets.example.com/pepe.png",
                    "market_cap_rank": 24,
                }
            },
            {
                "item": {
                    "id": "solana",
                    "name": "Solana",
                    "symbol": "sol",
                    "thumb": "https://assets.example.com/sol.png",
                    "market_cap_rank": 5,
                }
            },
        ],
        "nfts": [],
    }


@pytest.fixture
def sample_markets():
    """CoinGecko /coins/markets payload."""
    return [
        {
            "id": "bitcoin",
            "symbol": "btc",
            "name": "Bitcoin",
            "image": "https://assets.example.com/btc.png",
            "current_price": 67250.12,
            "market_cap": 1324000000000,
            "market_cap_rank": 1,
            "total_volume": 28500000000,
            "price_change_percentage_24h": 2.31,
        },
        {
            "id": "ethereum",
            "symbol": "eth",
            "name": "Ethereum",
            "image": "https://assets.example.com/eth.png",
            "current_price": 3480.55,
            "market_cap": 418000000000,
            "market_cap_rank": 2,
            "total_volume": 14100000000,
            "price_change_percentage_24h": -0.84,
        },
    ]


@pytest.fixture
def sample_coin():
    """CoinGecko /coins/{id} payload."""
    return {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "description": {"en": "Bitcoin is the first decentralized cryptocurrency."},
        "links": {
            "homepage": ["http://www.bitcoin.org", "", ""],
            "blockchain_site": ["https://mempool.space/", "https://blockchair.com/bitcoin/"],
        },
        "genesis_date": "2009-01-03",
        "sentiment_votes_up_percentage": 84.5,
        "market_cap_rank": 1,
        "market_data": {
            "current_price": {"usd": 67250.12},
            "market_cap": {"usd": 1324000000000},
            "circulating_supply": 19700000.0,
            "max_supply": 21000000.0,
        },
    }
