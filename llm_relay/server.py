"""
LLM Relay Server

Application factory and uvicorn entry point.
"""

import os
import logging
from typing import Optional

import httpx
from fastapi import FastAPI

from .config import RelayConfig, load_config
from .llm.proxy import LLMProxy
from .telemetry import init_telemetry

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("llm-relay")

CONFIG_ENV = "LLM_RELAY_CONFIG"


def create_app(
    config: Optional[RelayConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create FastAPI application."""
    config = config or RelayConfig.from_env()

    if not config.server.has_api_key:
        logger.warning("LLM_API_KEY is not set; default upstream routes will answer 500")

    proxy = LLMProxy(config=config.server, transport=transport)
    return proxy.app


def app_from_env() -> FastAPI:
    """uvicorn factory used when the server runs with reload or several workers."""
    config_path = os.environ.get(CONFIG_ENV)
    config = load_config(config_path) if config_path else RelayConfig.from_env()
    init_telemetry()
    return create_app(config)


def main(config_path: str = None, host: str = None, port: int = None, reload: bool = False):
    """Run the LLM Relay server."""
    import uvicorn

    config = load_config(config_path) if config_path else RelayConfig.from_env()

    host = host or config.http.host
    port = port or config.http.port
    reload = reload or config.http.reload

    logger.info(f"Starting LLM Relay on {host}:{port}")
    logger.info(f"  Upstream: {config.server.api_url}")
    logger.info(f"  Default model: {config.server.default_model}")
    logger.info(f"  Credential: {'configured' if config.server.has_api_key else 'missing'}")

    if reload or config.http.workers > 1:
        # uvicorn needs an import string to spawn reloader/worker processes
        if config_path:
            os.environ[CONFIG_ENV] = str(config_path)
        uvicorn.run(
            "llm_relay.server:app_from_env",
            factory=True,
            host=host,
            port=port,
            workers=config.http.workers,
            reload=reload,
            log_level="info",
        )
        return

    init_telemetry()
    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
