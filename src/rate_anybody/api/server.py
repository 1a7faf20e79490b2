"""
FastAPI application for the rating service.

This module builds the FastAPI application that replaces the browser page's
search and submit flows.  It sets up:
- CORS middleware so a static front end on another origin can call it
- The service context (configuration and the lazily loaded signer)
- All API route endpoints

The signing key is read from ``WALLET_JSON_BASE64`` on the first submission,
so the service starts (and serves searches) without one.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rate_anybody import __version__
from rate_anybody.api.context import ServiceContext
from rate_anybody.api.routes.register import register_routes
from rate_anybody.config import RaterConfig, configure_logging, load_config

logger = logging.getLogger(__name__)


def create_app(config: RaterConfig | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings to serve with; loaded from the default sources when omitted.
    """
    cfg = config if config is not None else load_config()

    app = FastAPI(title="RateAnybody", version=__version__)

    # Searches are public and read-only; submissions are signed server-side.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    context = ServiceContext(config=cfg)
    app.state.context = context
    register_routes(app, context)
    return app


def start_server(
    config: RaterConfig | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """
    Run the service under uvicorn.

    Args:
        config: Settings to serve with; loaded from the default sources when omitted.
        host: Interface to bind; defaults to the configured service host.
        port: Port to bind; defaults to the configured service port.
    """
    import uvicorn

    cfg = config if config is not None else load_config()
    configure_logging(cfg.logging)

    bind_host = host or cfg.service.host
    bind_port = port or cfg.service.port
    logger.info("Starting RateAnybody service on %s:%d", bind_host, bind_port)
    uvicorn.run(create_app(cfg), host=bind_host, port=bind_port)
