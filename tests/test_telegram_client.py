"""Tests for TelegramClient against a fake Bot API served by aiohttp."""
import asyncio
import logging

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from relay.telegram_client import TelegramClient, UpstreamError

TOKEN = "123456:SECRET-token"


def fake_bot_api(handler):
    app = web.Application()
    app.router.add_post("/{bot}/sendMessage", handler)
    return TestServer(app)


def base_url(server):
    return f"http://{server.host}:{server.port}"


@pytest.mark.asyncio
async def test_send_message_posts_payload_and_returns_response():
    received = []

    async def send_message(request):
        received.append((request.match_info["bot"], await request.json()))
        return web.json_response({"ok": True, "result": {"message_id": 9}})

    async with fake_bot_api(send_message) as server:
        async with TelegramClient(base_url(server), TOKEN, "629605778") as client:
            response = await client.send_message("hi", "MarkdownV2")

    assert response.status == 200
    assert response.data == {"ok": True, "result": {"message_id": 9}}
    assert received == [
        (f"bot{TOKEN}", {"chat_id": "629605778", "text": "hi", "parse_mode": "MarkdownV2"})
    ]


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised():
    async def send_message(request):
        return web.json_response(
            {"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"},
            status=400,
        )

    async with fake_bot_api(send_message) as server:
        async with TelegramClient(base_url(server), TOKEN, "1") as client:
            response = await client.send_message("*", "MarkdownV2")

    assert response.status == 400
    assert response.data["error_code"] == 400


@pytest.mark.asyncio
async def test_non_json_body_raises_upstream_error():
    async def send_message(request):
        return web.Response(text="<html>Bad Gateway</html>", status=502)

    async with fake_bot_api(send_message) as server:
        async with TelegramClient(base_url(server), TOKEN, "1") as client:
            with pytest.raises(UpstreamError):
                await client.send_message("hi", "Markdown")


@pytest.mark.asyncio
async def test_timeout_raises_upstream_error():
    async def send_message(request):
        await asyncio.sleep(1)
        return web.json_response({"ok": True})

    async with fake_bot_api(send_message) as server:
        async with TelegramClient(base_url(server), TOKEN, "1", timeout=0.1) as client:
            with pytest.raises(UpstreamError):
                await client.send_message("hi", "Markdown")


@pytest.mark.asyncio
async def test_connection_error_does_not_leak_token(caplog):
    caplog.set_level(logging.DEBUG, logger="relay")

    async with TelegramClient("http://127.0.0.1:1", TOKEN, "1") as client:
        with pytest.raises(UpstreamError) as exc_info:
            await client.send_message("hi", "Markdown")

    assert TOKEN not in str(exc_info.value)
    assert TOKEN not in caplog.text


@pytest.mark.asyncio
async def test_session_opens_lazily_and_closes():
    client = TelegramClient("http://127.0.0.1:1", TOKEN, "1")

    with pytest.raises(UpstreamError):
        await client.send_message("hi", "Markdown")
    await client.close()

    assert client._session is None
