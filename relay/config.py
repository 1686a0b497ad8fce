"""
Relay service configuration from environment variables.

Environment variables:
- BOT_TOKEN: Telegram bot token (secret, never logged)
- CHAT_ID: Destination chat ID
- ALLOWED_ORIGINS: Comma-separated list of exact origins allowed to call the relay
- ORIGIN_POLICY: "permissive-echo" (default) or "strict-deny"
- MESSAGE_FORMATTING: "escaped" (default, MarkdownV2) or "plain" (Markdown)
- SITE_LABEL: Footer label appended to every forwarded message
- TELEGRAM_API_BASE: Upstream base URL (default https://api.telegram.org)
- UPSTREAM_TIMEOUT: Optional upstream timeout in seconds
- RELAY_CONFIG_FILE: Optional YAML file with the non-secret settings above
- PORT: Server port (default 8000)
- LOG_LEVEL: Logging level (default INFO)
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Tuple

import yaml


DEFAULT_ALLOWED_ORIGINS = (
    "https://bunraonepiece.me",
    "https://www.bunraonepiece.me",
    "https://sunbunra09-cmd.github.io",
)
DEFAULT_SITE_LABEL = "bunraonepiece.me"
DEFAULT_TELEGRAM_API_BASE = "https://api.telegram.org"

# Keys accepted from RELAY_CONFIG_FILE. Credentials are environment-only.
_FILE_KEYS = {
    "allowed_origins",
    "origin_policy",
    "formatting",
    "site_label",
    "telegram_api_base",
    "upstream_timeout",
}


class ConfigError(ValueError):
    """Raised at startup when the relay configuration is unusable."""


class OriginPolicy(str, Enum):
    PERMISSIVE_ECHO = "permissive-echo"
    STRICT_DENY = "strict-deny"


class Formatting(str, Enum):
    PLAIN = "plain"
    ESCAPED = "escaped"


@dataclass(frozen=True)
class RelayConfig:
    """Immutable relay settings, built once at startup and passed to the handler."""

    bot_token: str = field(default="", repr=False)
    chat_id: str = ""
    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    origin_policy: OriginPolicy = OriginPolicy.PERMISSIVE_ECHO
    formatting: Formatting = Formatting.ESCAPED
    site_label: str = DEFAULT_SITE_LABEL
    telegram_api_base: str = DEFAULT_TELEGRAM_API_BASE
    upstream_timeout: Optional[float] = None
    port: int = 8000

    def __post_init__(self):
        if not self.allowed_origins:
            raise ConfigError("ALLOWED_ORIGINS must contain at least one origin")

    @property
    def credentials_configured(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_id)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """
        Build the config from the process environment.

        Values from RELAY_CONFIG_FILE are applied first; environment
        variables override them.

        Raises:
            ConfigError: On unknown policy values, an empty origin list,
                a bad timeout, or an unreadable config file.
        """
        env = os.environ if environ is None else environ

        settings = {}
        config_file = env.get("RELAY_CONFIG_FILE", "").strip()
        if config_file:
            settings.update(load_config_file(Path(config_file)))

        if env.get("ALLOWED_ORIGINS") is not None:
            settings["allowed_origins"] = env["ALLOWED_ORIGINS"]
        for key, var in (
            ("origin_policy", "ORIGIN_POLICY"),
            ("formatting", "MESSAGE_FORMATTING"),
            ("site_label", "SITE_LABEL"),
            ("telegram_api_base", "TELEGRAM_API_BASE"),
            ("upstream_timeout", "UPSTREAM_TIMEOUT"),
        ):
            if env.get(var):
                settings[key] = env[var]

        return cls(
            bot_token=env.get("BOT_TOKEN", "").strip(),
            chat_id=env.get("CHAT_ID", "").strip(),
            allowed_origins=_parse_origins(
                settings.get("allowed_origins", DEFAULT_ALLOWED_ORIGINS)
            ),
            origin_policy=_parse_enum(
                OriginPolicy, settings.get("origin_policy", OriginPolicy.PERMISSIVE_ECHO)
            ),
            formatting=_parse_enum(
                Formatting, settings.get("formatting", Formatting.ESCAPED)
            ),
            site_label=str(settings.get("site_label", DEFAULT_SITE_LABEL)),
            telegram_api_base=str(
                settings.get("telegram_api_base", DEFAULT_TELEGRAM_API_BASE)
            ).rstrip("/"),
            upstream_timeout=_parse_timeout(settings.get("upstream_timeout")),
            port=_parse_port(env.get("PORT", "8000")),
        )


def load_config_file(path: Path) -> dict:
    """
    Load non-secret settings from a YAML file.

    Security: credential keys are rejected so the token only ever comes
    from the environment / secret store.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load relay config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Relay config file {path} must contain a mapping")

    unknown = set(data) - _FILE_KEYS
    if unknown:
        raise ConfigError(
            f"Relay config file {path} has unsupported keys: {', '.join(sorted(unknown))}"
        )
    return data


def _parse_origins(value) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ConfigError("allowed_origins must be a list or comma-separated string")

    origins = []
    for item in items:
        origin = str(item).strip()
        if origin and origin not in origins:
            origins.append(origin)
    if not origins:
        raise ConfigError("ALLOWED_ORIGINS must contain at least one origin")
    return tuple(origins)


def _parse_enum(enum_cls, value):
    try:
        return enum_cls(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(
            f"Invalid {enum_cls.__name__} {value!r} (expected one of: {choices})"
        ) from None


def _parse_timeout(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"UPSTREAM_TIMEOUT must be a number, got {value!r}") from None
    if timeout <= 0:
        raise ConfigError("UPSTREAM_TIMEOUT must be positive")
    return timeout


def _parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {value!r}") from None
