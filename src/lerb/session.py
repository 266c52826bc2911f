from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable

import anyio

from .config import BotSettings
from .dispatcher import UpdateDispatcher
from .errors import CredentialError
from .logging import get_logger
from .loop import PollingLoop
from .store import LinkStore, StoredLink
from .telegram.client import BotClient
from .telegram.types import BotIdentity

logger = get_logger(__name__)


class BotStatus(enum.StrEnum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    ERROR = "error"


class BotSession:
    """One bot, one link store, one polling loop.

    ``run`` verifies the credential and then polls until ``stop`` is called.
    Observers get every status change and every newly stored link.
    """

    def __init__(
        self,
        bot: BotClient,
        settings: BotSettings,
        *,
        store: LinkStore | None = None,
        on_status: Callable[[BotStatus], None] | None = None,
        on_stored: Callable[[StoredLink], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._bot = bot
        self._settings = settings
        self.store = store if store is not None else LinkStore()
        self._on_status = on_status
        self._on_stored = on_stored
        self._sleep = sleep
        self.status = BotStatus.IDLE
        self.identity: BotIdentity | None = None
        self.error: str | None = None
        self._loop: PollingLoop | None = None
        self._stop_requested = False

    @property
    def loop(self) -> PollingLoop | None:
        return self._loop

    def _set_status(self, status: BotStatus) -> None:
        if status == self.status:
            return
        logger.info("session.status", previous=self.status.value, status=status.value)
        self.status = status
        if self._on_status is not None:
            self._on_status(status)

    async def verify(self) -> BotIdentity:
        self.error = None
        self._set_status(BotStatus.STARTING)
        try:
            identity = await self._bot.verify_identity()
        except CredentialError as exc:
            self.error = str(exc)
            self._set_status(BotStatus.ERROR)
            logger.error("session.credential_rejected", error=str(exc))
            raise
        self.identity = identity
        logger.info("session.verified", bot_id=identity.id, username=identity.username)
        return identity

    async def run(self) -> None:
        if self.status in (BotStatus.STARTING, BotStatus.RUNNING):
            raise RuntimeError(f"session is already {self.status.value}")
        self._stop_requested = False
        await self.verify()
        if self._stop_requested:
            self._set_status(BotStatus.IDLE)
            return
        dispatcher = UpdateDispatcher(
            self._bot, self.store, self._settings, on_stored=self._on_stored
        )
        self._loop = PollingLoop(
            self._bot,
            dispatcher,
            poll_interval=self._settings.poll_interval,
            error_cooldown=self._settings.error_cooldown,
            sleep=self._sleep,
        )
        self._set_status(BotStatus.RUNNING)
        logger.info("session.started")
        try:
            await self._loop.run()
        except Exception as exc:
            self.error = str(exc)
            self._set_status(BotStatus.ERROR)
            logger.error(
                "session.failed", error=str(exc), error_type=exc.__class__.__name__
            )
            raise
        finally:
            if self.status == BotStatus.RUNNING:
                self._set_status(BotStatus.IDLE)
            logger.info("session.stopped", stored=len(self.store))

    def stop(self) -> None:
        self._stop_requested = True
        if self._loop is not None:
            self._loop.stop()

    def clear(self) -> None:
        logger.info("session.cleared", removed=len(self.store))
        self.store.clear()
