"""Background task removing idle sessions on a fixed interval."""

import asyncio
import logging
from datetime import timedelta

from sova.storage import SessionManager

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Runs ``SessionManager.sweep_idle`` every ``interval`` seconds."""

    def __init__(
        self,
        sessions: SessionManager,
        idle_threshold: timedelta = timedelta(minutes=30),
        interval: float = 300.0,
    ):
        self.sessions = sessions
        self.idle_threshold = idle_threshold
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Session sweeper started (idle={self.idle_threshold}, every {self.interval}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")

    async def sweep_once(self) -> int:
        return await self.sessions.sweep_idle(self.idle_threshold)

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval)
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Session sweep error: {e}")
