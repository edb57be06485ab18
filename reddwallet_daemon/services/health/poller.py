"""
Health Poller

Detects when the freshly spawned daemon is ready by probing its RPC
interface every second.

Probe outcomes:
- success → READY
- ECONNREFUSED (not listening yet) → keep polling
- -15, wallet not encrypted → READY (the daemon answered)
- no recognisable code → keep polling, log
- any other code (e.g. -28 warming up) → keep polling, log

There is no give-up policy by default: an unresponsive daemon is polled
until the poller is stopped. probe_timeout_s bounds it when set.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable

from ...common.events import EventBus
from ...common.exceptions import DaemonRuntimeError, RpcError
from ...common.logging_setup import get_component_logger
from ...common.scheduler import ScheduledLoop
from ..rpc.client import CONNECTION_REFUSED, WALLET_UNENCRYPTED, DaemonRpcClient
from .heartbeat import BlockHeartbeat


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    READY = "ready"
    STOPPED = "stopped"


class HealthPoller:
    """
    Polls the daemon until it answers, then hands over to the heartbeat.

    The probe loop is cancelled as soon as the daemon is ready; the block
    heartbeat then runs for the rest of the session until shutdown().
    """

    def __init__(
        self,
        rpc: DaemonRpcClient,
        events: EventBus,
        probe_interval_s: float = 1.0,
        heartbeat_interval_s: float = 10.0,
        probe_timeout_s: float | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.rpc = rpc
        self.events = events
        self.probe_interval_s = probe_interval_s
        self.probe_timeout_s = probe_timeout_s
        self.logger = logger or get_component_logger("health")

        self.heartbeat = BlockHeartbeat(events, heartbeat_interval_s, logger=self.logger)
        self._probe_loop = ScheduledLoop(probe_interval_s, self._tick, name="daemon-probe", logger=self.logger)

        self.state = PollState.IDLE
        self._ready = asyncio.Event()
        self._probe_count = 0
        self._started_at: float | None = None
        self._on_ready: Callable[[], None] | None = None
        self._on_timeout: Callable[[DaemonRuntimeError], None] | None = None

    def start(
        self,
        on_ready: Callable[[], None] | None = None,
        on_timeout: Callable[[DaemonRuntimeError], None] | None = None,
    ) -> None:
        """Enter POLLING and start the probe loop"""
        if self.state is not PollState.IDLE:
            return

        self._on_ready = on_ready
        self._on_timeout = on_timeout
        self._started_at = asyncio.get_running_loop().time()
        self.state = PollState.POLLING
        self._probe_loop.start()
        self.logger.info(f"Waiting for daemon (probe every {self.probe_interval_s}s)")

    async def _tick(self) -> None:
        if self.state is PollState.POLLING:
            await self.poll_once()

    async def poll_once(self) -> bool:
        """
        Run a single probe.

        Returns:
            True if the daemon is (now) ready
        """
        if self.state is not PollState.POLLING:
            return self.state is PollState.READY

        self._probe_count += 1
        try:
            await self.rpc.probe()
        except RpcError as e:
            if not self._error_means_ready(e):
                self._check_timeout()
                return False

        self._mark_ready()
        return self.state is PollState.READY

    def _error_means_ready(self, error: RpcError) -> bool:
        if error.code is None:
            self.logger.info(f"Daemon still not started.. (unrecognised RPC error: {error.message})")
            return False

        if error.code == CONNECTION_REFUSED:
            self.logger.debug("Daemon still not started..")
            return False

        if error.code == WALLET_UNENCRYPTED:
            self.logger.info("Error code -15, wallet not encrypted")
            return True

        self.logger.info(f"Daemon not ready yet: {error}")
        return False

    def _check_timeout(self) -> None:
        if self.probe_timeout_s is None or self._started_at is None:
            return

        elapsed = asyncio.get_running_loop().time() - self._started_at
        if elapsed < self.probe_timeout_s:
            return

        self.logger.error(f"Daemon not ready after {elapsed:.1f}s, giving up")
        self.stop()
        if self._on_timeout:
            self._on_timeout(DaemonRuntimeError(
                f"The daemon did not become ready within {self.probe_timeout_s:g} seconds."
            ))

    def _mark_ready(self) -> None:
        if self.state is not PollState.POLLING:
            return

        self._probe_loop.stop()
        self.state = PollState.READY
        self._ready.set()
        self.logger.info(f"Daemon has started... (after {self._probe_count} probes)")

        if self._on_ready:
            self._on_ready()

        self.heartbeat.start()

    async def wait_ready(self) -> None:
        await self._ready.wait()

    def stop(self) -> None:
        """Cancel the probe loop (the heartbeat, if started, keeps running)"""
        self._probe_loop.stop()
        if self.state in (PollState.IDLE, PollState.POLLING):
            self.state = PollState.STOPPED

    def shutdown(self) -> None:
        """End of session: cancel the probe loop and the heartbeat"""
        self.stop()
        self.heartbeat.stop()

    @property
    def probe_count(self) -> int:
        return self._probe_count
