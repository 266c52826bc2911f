from __future__ import annotations

from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .config import START_CALLBACK_DATA, BotSettings
from .errors import ActionError, TransportError
from .links import extract_links
from .logging import get_logger
from .store import LinkStore, StoredLink
from .telegram.api_models import Update
from .telegram.client import BotClient, inline_button_markup
from .telegram.parsing import parse_incoming_update
from .telegram.types import IncomingCallback, IncomingMessage

logger = get_logger(__name__)

RECENT_SUPPRESSED = 50


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class DispatchReport:
    callbacks: int = 0
    commands: int = 0
    links_detected: int = 0
    links_stored: int = 0
    # Only the most recent failures are kept; `suppressed_total` counts all.
    suppressed: deque[ActionError] = field(
        default_factory=lambda: deque(maxlen=RECENT_SUPPRESSED)
    )
    suppressed_total: int = 0
    failed: int = 0

    def merge(self, other: DispatchReport) -> None:
        self.callbacks += other.callbacks
        self.commands += other.commands
        self.links_detected += other.links_detected
        self.links_stored += other.links_stored
        self.suppressed.extend(other.suppressed)
        self.suppressed_total += other.suppressed_total
        self.failed += other.failed


class UpdateDispatcher:
    def __init__(
        self,
        bot: BotClient,
        store: LinkStore,
        settings: BotSettings,
        *,
        clock: Callable[[], datetime] = _utcnow,
        on_stored: Callable[[StoredLink], None] | None = None,
    ) -> None:
        self._bot = bot
        self._store = store
        self._settings = settings
        self._clock = clock
        self._on_stored = on_stored

    async def dispatch(self, batch: Sequence[Update]) -> DispatchReport:
        """Handle a fetched batch strictly in delivery order."""
        report = DispatchReport()
        for update in batch:
            try:
                await self._dispatch_one(update, report)
            except TransportError as exc:
                report.failed += 1
                logger.error(
                    "dispatch.update_failed",
                    update_id=update.update_id,
                    error=str(exc),
                    error_type=exc.__class__.__name__,
                )
        return report

    async def _dispatch_one(self, update: Update, report: DispatchReport) -> None:
        incoming = parse_incoming_update(update)
        if isinstance(incoming, IncomingCallback):
            await self._bot.answer_callback_query(
                incoming.callback_id, self._settings.callback_ack_text
            )
            report.callbacks += 1
            return
        if not isinstance(incoming, IncomingMessage) or not incoming.text:
            return
        if incoming.text == self._settings.start_command:
            await self._bot.send_message(
                incoming.chat_id,
                self._settings.welcome_text,
                inline_button_markup(
                    self._settings.start_button_text, START_CALLBACK_DATA
                ),
            )
            report.commands += 1
            return
        await self._handle_text(incoming, report)

    async def _handle_text(self, msg: IncomingMessage, report: DispatchReport) -> None:
        links = extract_links(msg.text or "")
        if not links:
            return
        stored = self._store.accept(links, self._clock())
        report.links_detected += len(links)
        report.links_stored += len(stored)
        logger.info(
            "dispatch.links_stored",
            chat_id=msg.chat_id,
            message_id=msg.message_id,
            detected=len(links),
            stored=len(stored),
        )
        if self._on_stored is not None:
            for entry in stored:
                self._on_stored(entry)

        result = await self._bot.delete_message(msg.chat_id, msg.message_id)
        if result.error is not None:
            report.suppressed.append(result.error)
            report.suppressed_total += 1
        # The confirmation counts what was detected, not what survived dedup.
        await self._bot.send_message(
            msg.chat_id, self._settings.confirmation_text(len(links))
        )
