from __future__ import annotations

from collections.abc import Awaitable, Callable

import anyio

from .dispatcher import DispatchReport, UpdateDispatcher
from .errors import TransportError
from .logging import get_logger
from .telegram.client import BotClient

logger = get_logger(__name__)


class PollingLoop:
    """Fetch, dispatch, pause; until stopped.

    The stop signal is only observed between iterations, so a long poll or
    a batch that is being dispatched always runs to completion.
    """

    def __init__(
        self,
        bot: BotClient,
        dispatcher: UpdateDispatcher,
        *,
        poll_interval: float = 0.5,
        error_cooldown: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self._bot = bot
        self._dispatcher = dispatcher
        self._poll_interval = poll_interval
        self._error_cooldown = error_cooldown
        self._sleep = sleep
        self._stop_requested = False
        self._polling = False
        self.iterations = 0
        self.failures = 0
        self.last_error: TransportError | None = None
        self.report = DispatchReport()

    @property
    def polling(self) -> bool:
        return self._polling

    def stop(self) -> None:
        self._stop_requested = True

    async def run(self) -> None:
        if self._polling:
            raise RuntimeError("polling loop is already running")
        self._polling = True
        logger.info("loop.started")
        try:
            while not self._stop_requested:
                await self.run_once()
        finally:
            self._polling = False
            logger.info("loop.stopped", iterations=self.iterations, failures=self.failures)

    async def run_once(self) -> None:
        self.iterations += 1
        try:
            updates = await self._bot.fetch_updates()
        except TransportError as exc:
            self.failures += 1
            self.last_error = exc
            logger.warning(
                "loop.fetch_failed",
                error=str(exc),
                error_type=exc.__class__.__name__,
                cooldown=self._error_cooldown,
            )
            await self._sleep(self._error_cooldown)
        else:
            if updates:
                logger.debug("loop.updates", count=len(updates))
                self.report.merge(await self._dispatcher.dispatch(updates))
        await self._sleep(self._poll_interval)
