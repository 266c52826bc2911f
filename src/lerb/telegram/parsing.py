from __future__ import annotations

from typing import Any

import msgspec

from ..logging import get_logger
from .api_models import CallbackQuery, Message, Update, decode_update
from .types import IncomingCallback, IncomingMessage, IncomingUpdate

logger = get_logger(__name__)


def parse_incoming_update(update: Update | dict[str, Any]) -> IncomingUpdate | None:
    """Route a raw update to its message or callback variant.

    Callback queries win over messages. Anything else parses to None.
    """
    if isinstance(update, dict):
        try:
            update = decode_update(update)
        except msgspec.ValidationError:
            return None

    if update.callback_query is not None:
        return _parse_callback_query(update.update_id, update.callback_query)
    if update.message is not None:
        return _parse_incoming_message(update.update_id, update.message)
    return None


def _parse_incoming_message(update_id: int, msg: Message) -> IncomingMessage:
    return IncomingMessage(
        update_id=update_id,
        chat_id=msg.chat.id,
        message_id=msg.message_id,
        sender_id=msg.from_.id if msg.from_ is not None else None,
        text=msg.text,
    )


def _parse_callback_query(update_id: int, query: CallbackQuery) -> IncomingCallback:
    origin = query.message
    return IncomingCallback(
        update_id=update_id,
        callback_id=query.id,
        sender_id=query.from_.id if query.from_ is not None else None,
        data=query.data,
        chat_id=origin.chat.id if origin is not None else None,
        message_id=origin.message_id if origin is not None else None,
    )


def decode_batch(payload: Any) -> tuple[list[Update], int | None]:
    """Decode a getUpdates result.

    Returns the decoded updates in delivery order and the highest update_id
    seen, including updates that failed to decode.
    """
    if not isinstance(payload, list):
        raise msgspec.ValidationError(
            f"expected a list of updates, got {type(payload).__name__}"
        )
    updates: list[Update] = []
    max_id: int | None = None
    for item in payload:
        raw_id = item.get("update_id") if isinstance(item, dict) else None
        if isinstance(raw_id, int) and not isinstance(raw_id, bool):
            max_id = raw_id if max_id is None else max(max_id, raw_id)
        try:
            updates.append(decode_update(item))
        except msgspec.ValidationError as exc:
            logger.warning(
                "telegram.update.malformed",
                update_id=raw_id,
                error=str(exc),
            )
    return updates, max_id
