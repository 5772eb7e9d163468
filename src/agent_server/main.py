from __future__ import annotations

import logging
import sys

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import agent_error_handler, request_validation_handler, router, unexpected_error_handler
from .errors import AgentServerError
from .runtime import AgentRuntime

# Configure logging for the entire agent_server package
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# httpx logs every request at INFO; the CoinGecko client already does
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def create_app(runtime: AgentRuntime | None = None) -> FastAPI:
    runtime = runtime or AgentRuntime.from_settings()

    app = FastAPI(
        title="Agent Server",
        description="LangGraph tool-calling agent",
        version=__version__,
        debug=runtime.settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AgentServerError, agent_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    app.include_router(router)
    app.state.runtime = runtime

    logger.info(
        "Agent server ready (provider=%s, memory=%s, tools=%d)",
        runtime.settings.default_model_provider,
        runtime.settings.agent_memory_type,
        len(runtime.registry),
    )
    return app


app = create_app()
