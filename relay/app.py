"""
Telegram Relay — FastAPI Application

Main entry point for the relay service. Wires together:
- Relay endpoint on every path (POST to forward, OPTIONS for CORS preflight)
- Health check at /health

The bot token stays on the server; browsers only ever see the relayed
Telegram response or a generic error description.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request

from relay.config import RelayConfig
from relay.relay_handler import IncomingRequest, RelayHandler
from relay.telegram_client import TelegramClient

# Configure logging
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class RelayEndpoint:
    """ASGI endpoint for the relay. The path is ignored; every path and method behaves the same."""

    async def __call__(self, scope, receive, send):
        request = Request(scope, receive)
        handler: RelayHandler = request.app.state.handler
        incoming = IncomingRequest(
            method=request.method,
            origin=request.headers.get("Origin", ""),
            body=await request.body(),
        )
        response = await handler.handle(incoming)
        await response(scope, receive, send)


def create_app(
    config: Optional[RelayConfig] = None,
    telegram: Optional[TelegramClient] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Relay settings; read from the environment at startup when None
        telegram: Upstream client; one is created (and closed) by the lifespan when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle."""
        cfg = config if config is not None else RelayConfig.from_env()

        # Startup
        logger.info("Starting Telegram Relay...")
        logger.info(f"Origin policy: {cfg.origin_policy.value}")
        logger.info(f"Formatting: {cfg.formatting.value}")
        logger.info(f"Allowed origins: {len(cfg.allowed_origins)}")
        logger.info(f"Credentials configured: {'Yes' if cfg.credentials_configured else 'No'}")
        if not cfg.credentials_configured:
            logger.warning("BOT_TOKEN / CHAT_ID not set; POST requests will return 500")

        owns_client = telegram is None
        client = telegram or TelegramClient(
            base_url=cfg.telegram_api_base,
            bot_token=cfg.bot_token,
            chat_id=cfg.chat_id,
            timeout=cfg.upstream_timeout,
        )
        if owns_client:
            await client.start()

        app.state.config = cfg
        app.state.handler = RelayHandler(cfg, client)
        logger.info("Relay started successfully")

        yield

        # Shutdown
        logger.info("Shutting down relay...")
        if owns_client:
            await client.close()

    app = FastAPI(title="Telegram Relay", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """Health check. Reports configuration state, never secret values."""
        cfg: RelayConfig = request.app.state.config
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "credentials_configured": cfg.credentials_configured,
            "origin_policy": cfg.origin_policy.value,
            "formatting": cfg.formatting.value,
        }

    # Registered as a raw ASGI app so every method reaches the handler
    app.add_route("/{path:path}", RelayEndpoint())

    return app


app = create_app()
