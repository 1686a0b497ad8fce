"""
Relay handler: validate a browser message and forward it to Telegram.

One request in, at most one sendMessage call out. Every gate returns a
finished response, so handle() never raises past its own boundary.
"""
import json
import logging
from dataclasses import dataclass

from fastapi import Response

from relay.config import RelayConfig
from relay.cors import (
    error_response,
    forbidden_response,
    json_response,
    preflight_response,
    resolve_origin,
)
from relay.telegram_client import TelegramClient, UpstreamError
from relay.utils import MAX_MESSAGE_LENGTH, build_caption, extract_message, message_length

logger = logging.getLogger(__name__)


def _reject_constant(name: str):
    """NaN and Infinity are not valid JSON."""
    raise ValueError(f"Invalid JSON constant: {name}")


@dataclass(frozen=True)
class IncomingRequest:
    method: str
    origin: str
    body: bytes = b""


class RelayHandler:
    """Applies the origin policy and message gates, then relays to Telegram."""

    def __init__(self, config: RelayConfig, telegram: TelegramClient):
        self.config = config
        self.telegram = telegram

    async def handle(self, request: IncomingRequest) -> Response:
        origin = request.origin or ""
        method = request.method.upper()

        allowed = resolve_origin(origin, self.config)
        if allowed is None:
            logger.warning(f"Rejected {method} from disallowed origin {origin or '(none)'}")
            return forbidden_response()

        # CORS preflight
        if method == "OPTIONS":
            return preflight_response(allowed)

        if method != "POST":
            return error_response("Method not allowed", 405, allowed)

        try:
            payload = json.loads(request.body, parse_constant=_reject_constant)
        except (ValueError, UnicodeDecodeError):
            return error_response("Invalid JSON", 400, allowed)

        message = extract_message(payload)
        if not message:
            return error_response("Message is empty", 400, allowed)

        if message_length(message) > MAX_MESSAGE_LENGTH:
            return error_response("Message too long", 400, allowed)

        if not self.config.credentials_configured:
            # Operator problem: say which setting is missing, never its value
            missing = [
                name
                for name, value in (("BOT_TOKEN", self.config.bot_token), ("CHAT_ID", self.config.chat_id))
                if not value
            ]
            logger.error(f"Relay not configured, missing: {', '.join(missing)}")
            return error_response("Worker env vars not configured", 500, allowed)

        text, parse_mode = build_caption(
            message, self.config.formatting, self.config.site_label
        )

        try:
            upstream = await self.telegram.send_message(text, parse_mode)
        except UpstreamError:
            return error_response("Upstream error", 502, allowed)
        except Exception as e:
            # Type name only: the exception text may carry the request URL
            logger.error(f"Unexpected error relaying message: {type(e).__name__}")
            return error_response("Upstream error", 502, allowed)

        logger.info(
            f"Relayed message ({message_length(message)} chars, {parse_mode}) from {origin or '(none)'}: "
            f"upstream status {upstream.status}"
        )
        return json_response(upstream.data, upstream.status, allowed)
