from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BotIdentity:
    id: int
    username: str | None
    first_name: str | None


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    update_id: int
    chat_id: int
    message_id: int
    sender_id: int | None
    text: str | None


@dataclass(frozen=True, slots=True)
class IncomingCallback:
    update_id: int
    callback_id: str
    sender_id: int | None
    data: str | None
    chat_id: int | None = None
    message_id: int | None = None


IncomingUpdate = IncomingMessage | IncomingCallback
