#!/usr/bin/env python3
"""
Application factory for the chat relay.

create_app returns a plain ASGI application, so it can be served by the
long-running listener in main.py or mounted by any on-demand ASGI host.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from chat_relay.shared.config import RelayConfig, logger
from chat_relay.shared.errors import register_exception_handlers
from chat_relay.shared.middleware import CORSPolicyMiddleware, RequestIDMiddleware, log_relay_exchange
from chat_relay.features.relay_chat.client import UpstreamChatClient, build_timeout
from chat_relay.features.relay_chat.validator import ConversationValidator
from chat_relay.features.relay_chat.endpoints import router as relay_chat_router
from chat_relay.features.health_check.endpoints import router as health_check_router
from chat_relay.features.metrics.endpoints import router as metrics_router


def create_app(
    config_: RelayConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """Build the relay app around an already validated configuration."""

    @asynccontextmanager
    async def lifespan(app_: FastAPI):
        """Manage application lifespan resources."""
        client_kwargs = {"timeout": build_timeout(config_.upstream)}
        if transport is not None:
            client_kwargs["transport"] = transport
        elif config_.request_proxy.enabled and config_.request_proxy.url:
            client_kwargs["proxy"] = config_.request_proxy.url
            logger.info("Using proxy for httpx client: %s", config_.request_proxy.url)
        app_.state.http_client = httpx.AsyncClient(**client_kwargs)

        app_.state.validator = ConversationValidator(config_.upstream)
        app_.state.upstream_client = UpstreamChatClient(app_.state.http_client, config_.upstream)

        logger.info("Application startup complete")
        yield
        await app_.state.http_client.aclose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Chat Relay",
        description="Relays conversations to a chat-completion API and streams the reply back",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config_

    app.include_router(relay_chat_router, prefix="/api", tags=["Relay"])
    app.include_router(health_check_router, tags=["Monitoring"])
    app.include_router(metrics_router)

    register_exception_handlers(app)

    app.add_middleware(CORSPolicyMiddleware, cors=config_.cors)
    app.add_middleware(RequestIDMiddleware)
    app.middleware("http")(log_relay_exchange)

    # Mounted last so the API routes above take precedence over "/".
    if config_.server.static_dir:
        app.mount("/", StaticFiles(directory=config_.server.static_dir, html=True), name="static")

    return app
