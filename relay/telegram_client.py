"""
Telegram Bot API client for the relay.

Wraps a single aiohttp ClientSession shared by all requests. The bot token
is part of the request URL, so neither the URL nor aiohttp's exception text
(which can include it) is ever logged or returned.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The Telegram API could not be reached or returned an unreadable body."""


@dataclass(frozen=True)
class UpstreamResponse:
    status: int
    data: Any


class TelegramClient:
    """Sends messages to one chat through the Bot API sendMessage method."""

    def __init__(
        self,
        base_url: str,
        bot_token: str,
        chat_id: str,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            base_url: API root, e.g. https://api.telegram.org
            bot_token: Bot token (interpolated into the URL, never logged)
            chat_id: Destination chat
            timeout: Total request timeout in seconds; aiohttp's default when None
        """
        self.base_url = base_url.rstrip("/")
        self._bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        """Open the HTTP session (called from the app lifespan)."""
        if self._session is None or self._session.closed:
            kwargs = {}
            if self.timeout is not None:
                kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(**kwargs)

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _url(self, method: str) -> str:
        return f"{self.base_url}/bot{self._bot_token}/{method}"

    async def send_message(self, text: str, parse_mode: str) -> UpstreamResponse:
        """
        POST one message to sendMessage.

        Any HTTP status is returned as-is; only transport failures and
        non-JSON bodies raise.

        Raises:
            UpstreamError: On connection errors, timeouts, or an undecodable body.
        """
        if self._session is None:
            await self.start()

        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": parse_mode}
        try:
            async with self._session.post(self._url("sendMessage"), json=payload) as resp:
                status = resp.status
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.error("Telegram request timed out")
            raise UpstreamError("Telegram request timed out") from None
        except aiohttp.ClientError as e:
            # Exception text may embed the request URL (and so the token)
            logger.error(f"Telegram request failed: {type(e).__name__}")
            raise UpstreamError(f"Telegram request failed: {type(e).__name__}") from None
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.error(f"Telegram returned a non-JSON body (status {status})")
            raise UpstreamError("Telegram returned a non-JSON body") from None

        if data is None:
            logger.error(f"Telegram returned an empty body (status {status})")
            raise UpstreamError("Telegram returned an empty body")

        if status >= 400:
            description = data.get("description") if isinstance(data, dict) else None
            logger.warning(f"Telegram rejected message: {status} {description or ''}".rstrip())
        return UpstreamResponse(status=status, data=data)
