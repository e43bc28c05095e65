import asyncio
import logging
from typing import Any, Dict, Set

from ..services.telegram import TelegramError, TelegramGateway
from .dispatcher import UpdateDispatcher

logger = logging.getLogger(__name__)


class UpdatePoller:
    """Long-polls getUpdates and hands every update to its own task."""

    def __init__(
        self,
        gateway: TelegramGateway,
        dispatcher: UpdateDispatcher,
        timeout: int = 30,
        retry_delay: float = 5.0,
    ) -> None:
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._offset: int | None = None
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def offset(self) -> int | None:
        return self._offset

    async def poll_once(self) -> int:
        """Fetch one batch of updates and schedule them. Returns the batch size."""
        updates = await self._gateway.get_updates(self._offset, self._timeout)
        for update in updates:
            self._offset = int(update["update_id"]) + 1
            self._spawn(update)
        return len(updates)

    def _spawn(self, update: Dict[str, Any]) -> None:
        task = asyncio.create_task(self._dispatcher.dispatch(update))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self) -> None:
        """Poll until cancelled."""
        logger.info("Polling for updates (timeout=%ss)", self._timeout)
        while True:
            try:
                await self.poll_once()
            except TelegramError as e:
                logger.warning("getUpdates failed: %s; retrying in %ss", e, self._retry_delay)
                await asyncio.sleep(self._retry_delay)
            except Exception as e:
                logger.exception("Unexpected polling error: %s; retrying in %ss", e, self._retry_delay)
                await asyncio.sleep(self._retry_delay)

    async def drain(self) -> None:
        """Wait for in-flight update tasks to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
