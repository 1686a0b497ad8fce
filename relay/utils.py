"""
Utility functions for the relay service.

Message extraction, the Telegram caption template and MarkdownV2 escaping.
"""
import re
from typing import Any, Tuple

from relay.config import Formatting

# Security: Maximum message length accepted from the browser (prevents abuse)
MAX_MESSAGE_LENGTH = 1000

# Characters reserved by Telegram MarkdownV2, plus the escape character itself
MARKDOWN_V2_SPECIAL_CHARS = "_*[]()~`>#+-=|{}.!\\"

_MARKDOWN_V2_RE = re.compile("([" + re.escape(MARKDOWN_V2_SPECIAL_CHARS) + "])")

# Whitespace removed when trimming: the ECMAScript WhiteSpace and
# LineTerminator sets (includes U+FEFF, excludes U+001C..U+001F)
TRIM_CHARS = (
    "\t\n\u000b\u000c\r \u00a0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

CAPTION_TEMPLATE = "💬 *Anonymous Message*\n\n{message}\n\n_Sent from {site_label}_"


def extract_message(payload: Any) -> str:
    """
    Pull the trimmed `message` field out of a parsed JSON body.

    Anything other than a JSON object with a string `message` yields "".
    """
    if not isinstance(payload, dict):
        return ""
    message = payload.get("message")
    if not isinstance(message, str):
        return ""
    return message.strip(TRIM_CHARS)


def message_length(message: str) -> int:
    """Length in UTF-16 code units, the unit browsers count in."""
    return len(message.encode("utf-16-le")) // 2


def escape_markdown_v2(text: str) -> str:
    """
    Escape text for Telegram's MarkdownV2 parse mode.

    Security: this is the trust boundary for user text. Every reserved
    character is prefixed with a backslash so the caller cannot inject
    formatting or break the rendered message.
    """
    return _MARKDOWN_V2_RE.sub(r"\\\1", text)


def build_caption(message: str, formatting: Formatting, site_label: str) -> Tuple[str, str]:
    """Wrap a validated message in the caption template.

    Returns:
        (text, parse_mode) ready for sendMessage.
    """
    if formatting == Formatting.ESCAPED:
        text = CAPTION_TEMPLATE.format(
            message=escape_markdown_v2(message),
            site_label=escape_markdown_v2(site_label),
        )
        return text, "MarkdownV2"

    return CAPTION_TEMPLATE.format(message=message, site_label=site_label), "Markdown"
