"""Telegram Bot API transport, client and update parsing."""

from .client import BotClient, TelegramClient, inline_button_markup
from .parsing import parse_incoming_update
from .transport import HttpTransport, Transport
from .types import BotIdentity, IncomingCallback, IncomingMessage, IncomingUpdate

__all__ = [
    "BotClient",
    "BotIdentity",
    "HttpTransport",
    "IncomingCallback",
    "IncomingMessage",
    "IncomingUpdate",
    "TelegramClient",
    "Transport",
    "inline_button_markup",
    "parse_incoming_update",
]
