"""
Single logical worker feeding intents to the dispatch engine.

An interactive front end submits intents without waiting; the worker takes
them off an asyncio.Queue one at a time and awaits each execute() before
taking the next, so no two intents ever overlap. Command mode does not need
it and awaits the engine directly.

Usage:
    worker = IntentWorker(engine)
    await worker.start()
    await worker.submit(FetchPlayback())
    reauth = asyncio.create_task(worker.refresh_periodically(3000))
    ...
    await worker.stop()
"""

import asyncio

from spot_remote.core.exceptions import ValidationError
from spot_remote.core.logger import get_logger
from spot_remote.engine.dispatcher import DispatchEngine
from spot_remote.engine.intents import Intent, RefreshAuthentication

logger = get_logger(__name__)

# Access tokens last an hour; refresh well before that
DEFAULT_REFRESH_INTERVAL_SECONDS = 3000.0


class IntentWorker:
    """Consume intents from a queue and execute them in submission order."""

    def __init__(self, engine: DispatchEngine) -> None:
        self.engine = engine
        self._queue: asyncio.Queue[Intent | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Let already-queued intents finish, then stop the worker task."""
        if not self._running:
            return
        self._running = False
        await self._queue.put(None)
        if self._task is not None:
            try:
                await self._task
            finally:
                self._task = None

    async def submit(self, intent: Intent) -> None:
        """
        Queue an intent.

        When the worker is not running the intent is executed immediately
        and a ValidationError reaches the caller.
        """
        if not self._running:
            await self.engine.execute(intent)
            return
        await self._queue.put(intent)

    async def wait_for_pending(self) -> None:
        """Wait until every queued intent has been executed."""
        await self._queue.join()

    async def refresh_periodically(
        self, interval: float = DEFAULT_REFRESH_INTERVAL_SECONDS
    ) -> None:
        """Submit RefreshAuthentication every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            logger.debug("Refreshing authentication")
            await self.submit(RefreshAuthentication())

    async def _run(self) -> None:
        while True:
            intent = await self._queue.get()
            if intent is None:
                self._queue.task_done()
                break
            try:
                await self.engine.execute(intent)
            except ValidationError as e:
                # Nobody is awaiting a queued intent; log and keep going
                logger.warning(f"Rejected {type(intent).__name__}: {e}")
            finally:
                self._queue.task_done()
