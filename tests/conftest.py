import pytest
from fastapi.testclient import TestClient

from relay.app import create_app
from relay.config import Formatting, OriginPolicy, RelayConfig
from relay.telegram_client import UpstreamResponse

ALLOWED = (
    "https://bunraonepiece.me",
    "https://www.bunraonepiece.me",
    "https://sunbunra09-cmd.github.io",
)
TOKEN = "123456:TEST-token-value"


class StubTelegram:
    """Records sendMessage calls instead of reaching the network."""

    def __init__(self, response=None, error=None):
        self.response = response or UpstreamResponse(
            status=200, data={"ok": True, "result": {"message_id": 7}}
        )
        self.error = error
        self.calls = []

    async def send_message(self, text, parse_mode):
        self.calls.append({"text": text, "parse_mode": parse_mode})
        if self.error is not None:
            raise self.error
        return self.response


def make_config(**overrides) -> RelayConfig:
    settings = {
        "bot_token": TOKEN,
        "chat_id": "629605778",
        "allowed_origins": ALLOWED,
        "origin_policy": OriginPolicy.PERMISSIVE_ECHO,
        "formatting": Formatting.ESCAPED,
    }
    settings.update(overrides)
    return RelayConfig(**settings)


@pytest.fixture
def stub_telegram():
    return StubTelegram()


@pytest.fixture
def relay_client():
    """Factory: relay_client(config, telegram) -> running TestClient."""
    clients = []

    def factory(config=None, telegram=None):
        client = TestClient(create_app(config or make_config(), telegram or StubTelegram()))
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
