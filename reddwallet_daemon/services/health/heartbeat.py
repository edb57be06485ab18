"""
Block Heartbeat

Once the daemon is ready, emits a synthetic block notification every
poll interval so the wallet refreshes even when no -blocknotify output
arrives (e.g. when attached to an already running daemon).
"""

import logging

from ...common.events import DaemonEvent, EventBus
from ...common.logging_setup import get_component_logger
from ...common.scheduler import ScheduledLoop


class BlockHeartbeat:
    """Emits daemon.notifications.block on a long interval"""

    def __init__(
        self,
        events: EventBus,
        interval_seconds: float = 10.0,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.events = events
        self.interval_seconds = interval_seconds
        self.logger = logger or get_component_logger("health.heartbeat")
        self._loop = ScheduledLoop(interval_seconds, self._beat, name="block-heartbeat", logger=self.logger)
        self._beats = 0

    def start(self) -> None:
        """Start emitting heartbeats"""
        self._loop.start()
        self.logger.info(f"Block heartbeat started (interval: {self.interval_seconds}s)")

    def stop(self) -> None:
        """Stop emitting heartbeats"""
        if self._loop.running:
            self._loop.stop()
            self.logger.info("Block heartbeat stopped")

    async def _beat(self) -> None:
        self._beats += 1
        self.events.emit(DaemonEvent.BLOCK)

    @property
    def running(self) -> bool:
        return self._loop.running

    @property
    def beat_count(self) -> int:
        return self._beats
