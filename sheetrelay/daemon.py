"""Fixed-interval polling loop for local/manual runs."""
from __future__ import annotations

import asyncio
import logging
import signal
from datetime import datetime, timezone
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Runnable(Protocol):  # pragma: no cover - protocol definition
    def run(self) -> None: ...


class PollerDaemon:
    """Background daemon that runs the poller on a fixed interval."""

    def __init__(self, poller: Runnable, interval_seconds: int, *, install_signal_handlers: bool = True) -> None:
        self.poller = poller
        self.interval_seconds = interval_seconds
        self.running = False
        self.runs = 0
        self._task: asyncio.Task[Any] | None = None
        if install_signal_handlers:
            self._setup_signal_handlers()

    def _setup_signal_handlers(self) -> None:
        """Setup graceful shutdown on SIGTERM/SIGINT."""
        def shutdown_handler(signum: int, frame: Any) -> None:
            logger.info("Received signal %s, initiating graceful shutdown...", signum)
            self.running = False

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)

    async def tick(self) -> bool:
        """Run the poller once; failures are logged and the loop keeps going."""
        self.runs += 1
        try:
            await asyncio.to_thread(self.poller.run)
        except Exception:
            logger.exception("Poll run %d failed", self.runs)
            return False
        return True

    async def poller_loop(self) -> None:
        logger.info("Running in local mode. Starting polling interval (%ss).", self.interval_seconds)

        while self.running:
            await self.tick()

            for _ in range(self.interval_seconds):
                if not self.running:
                    break
                await asyncio.sleep(1)

    async def start(self) -> None:
        self.running = True
        logger.info("Starting poller daemon at %s", datetime.now(timezone.utc).isoformat())
        self._task = asyncio.create_task(self.poller_loop())
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Poller task cancelled")
        logger.info("Poller daemon stopped")

    async def stop(self) -> None:
        logger.info("Stopping poller daemon...")
        self.running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)


__all__ = ["PollerDaemon"]
