from __future__ import annotations

from typing import Any, Protocol

import msgspec

from ..errors import ActionError, ActionResult, ApiError, CredentialError, TransportError
from ..logging import get_logger
from .api_models import Update, User
from .parsing import decode_batch
from .transport import HttpTransport, Transport
from .types import BotIdentity

logger = get_logger(__name__)

ALLOWED_UPDATES = ["message", "callback_query"]


def inline_button_markup(label: str, data: str) -> dict[str, Any]:
    return {"inline_keyboard": [[{"text": label, "callback_data": data}]]}


class BotClient(Protocol):
    async def close(self) -> None: ...

    async def verify_identity(self) -> BotIdentity: ...

    async def fetch_updates(self) -> list[Update]: ...

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> Any: ...

    async def delete_message(self, chat_id: int, message_id: int) -> ActionResult: ...

    async def answer_callback_query(self, callback_id: str, text: str) -> Any: ...


class TelegramClient:
    """Bot API client that owns the getUpdates cursor."""

    def __init__(self, transport: Transport, *, poll_timeout: int = 30) -> None:
        self._transport = transport
        self._poll_timeout = poll_timeout
        self._offset = 0

    @classmethod
    def from_token(
        cls, token: str, *, poll_timeout: int = 30, request_timeout: float = 60
    ) -> TelegramClient:
        return cls(
            HttpTransport(token, timeout_s=request_timeout),
            poll_timeout=poll_timeout,
        )

    @property
    def offset(self) -> int:
        return self._offset

    async def close(self) -> None:
        await self._transport.close()

    async def verify_identity(self) -> BotIdentity:
        try:
            result = await self._transport.request("getMe", {})
        except ApiError as exc:
            raise CredentialError(exc.description or "Invalid bot token") from exc
        except TransportError as exc:
            raise CredentialError(f"Could not verify bot token: {exc}") from exc
        try:
            user = msgspec.convert(result, type=User)
        except msgspec.ValidationError as exc:
            raise CredentialError(f"Unexpected getMe result: {exc}") from exc
        return BotIdentity(id=user.id, username=user.username, first_name=user.first_name)

    async def fetch_updates(self) -> list[Update]:
        result = await self._transport.request(
            "getUpdates",
            {
                "offset": self._offset,
                "timeout": self._poll_timeout,
                "allowed_updates": ALLOWED_UPDATES,
            },
        )
        try:
            updates, max_id = decode_batch(result)
        except msgspec.ValidationError as exc:
            logger.error("telegram.updates.invalid", error=str(exc))
            raise TransportError(f"getUpdates: {exc}", method="getUpdates") from exc
        if max_id is not None:
            self._offset = max(self._offset, max_id + 1)
        return updates

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> Any:
        params: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            params["reply_markup"] = reply_markup
        return await self._transport.request("sendMessage", params)

    async def delete_message(self, chat_id: int, message_id: int) -> ActionResult:
        try:
            await self._transport.request(
                "deleteMessage", {"chat_id": chat_id, "message_id": message_id}
            )
        except TransportError as exc:
            logger.warning(
                "telegram.delete_failed",
                chat_id=chat_id,
                message_id=message_id,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return ActionResult.suppressed(
                ActionError(str(exc), action="deleteMessage")
            )
        return ActionResult.success()

    async def answer_callback_query(self, callback_id: str, text: str) -> Any:
        return await self._transport.request(
            "answerCallbackQuery",
            {"callback_query_id": callback_id, "text": text, "show_alert": True},
        )
