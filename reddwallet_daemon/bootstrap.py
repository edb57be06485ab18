"""
Bootstrap Controller

Runs the local daemon startup pipeline, strictly in order, once:

    PreCheck → Configure → ParseConfig → OSSpecificPrep → KillExisting
    → RPC init → Spawn → Listen → PollHealth → Ready

Every stage failure is a DaemonError. It is caught here, converted into
the terminal {code, message} result and nothing after it runs. The
result is delivered exactly once through the ResultChannel and broadcast
as daemon.bootstrapped; anything that goes wrong after that (stderr
lines, the daemon exiting) is only logged and emitted.
"""

import logging
from pathlib import Path

from .common.config import PID_FILENAME, DaemonSettings
from .common.events import DaemonEvent, EventBus
from .common.exceptions import (
    BinaryMissingError,
    DaemonError,
    DaemonRuntimeError,
    PlatformUnsupportedError,
)
from .common.logging_setup import get_component_logger, log_bootstrap_result
from .common.result import BootstrapResult, ResultChannel
from .services.config import ConfigManager, DaemonConfig
from .services.health import HealthPoller
from .services.notifications import NotificationRelay
from .services.platform import PlatformResolver, ensure_executable, resolve_daemon_dir
from .services.process import PidRecord, ProcessSupervisor
from .services.rpc import DaemonRpcClient


class BootstrapController:
    """
    Drives the daemon from not-running to verified-ready.

    Collaborators can be injected (tests pass a fake RPC client and a
    resolver for a foreign platform); everything else is built from the
    settings when start_local() runs.
    """

    def __init__(
        self,
        settings: DaemonSettings | None = None,
        events: EventBus | None = None,
        rpc: DaemonRpcClient | None = None,
        resolver: PlatformResolver | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.settings = settings or DaemonSettings()
        self.logger = logger or get_component_logger("bootstrap")
        self.events = events or EventBus(logger=self.logger)
        self.rpc = rpc or DaemonRpcClient(timeout_s=self.settings.rpc_timeout_s)
        self.resolver = resolver or PlatformResolver(base_dir=self.settings.binaries_dir)

        self.result_channel = ResultChannel()

        # Built by the pipeline
        self.binary_path: Path | None = None
        self.config_manager: ConfigManager | None = None
        self.supervisor: ProcessSupervisor | None = None
        self.poller: HealthPoller | None = None

        self._started = False

    @property
    def daemon_config(self) -> DaemonConfig:
        if self.config_manager is None:
            return {}
        return self.config_manager.daemon_config

    @property
    def daemon_dir(self) -> Path:
        return resolve_daemon_dir(self.settings)

    async def start_local(self) -> BootstrapResult:
        """
        Bootstrap the bundled daemon.

        Returns:
            The terminal result (also available from result_channel)
        """
        if self._started:
            raise RuntimeError("start_local() can only run once per controller")
        self._started = True

        self.logger.info("Starting local daemon bootstrap")

        try:
            await self._run_pipeline()
        except DaemonError as e:
            self._fail(e)

        return await self.result_channel.wait()

    async def _run_pipeline(self) -> None:
        # PreCheck: nothing touches the filesystem for an unsupported platform
        if not self.resolver.has_valid_daemon():
            raise PlatformUnsupportedError(self.resolver.platform_id)

        self.binary_path = self.resolver.resolve_path()
        if not self.binary_path.exists():
            self.logger.error(f"Daemon binary not found: {self.binary_path}")
            raise BinaryMissingError(self.resolver.platform_label, str(self.binary_path))

        # Configure / ParseConfig
        daemon_dir = self.daemon_dir
        self.config_manager = ConfigManager(daemon_dir, self.settings.template_path)
        await self.config_manager.ensure_config()
        daemon_config = self.config_manager.parse_config()

        # OSSpecificPrep (best-effort)
        ensure_executable(self.binary_path, self.resolver.platform_id)

        relay = NotificationRelay(self.events)
        self.supervisor = ProcessSupervisor(
            binary_path=self.binary_path,
            config_path=self.config_manager.config_path,
            daemon_dir=daemon_dir,
            pid_record=PidRecord(daemon_dir / PID_FILENAME),
            relay=relay,
            events=self.events,
            kill_grace_s=self.settings.kill_grace_s,
        )

        await self.supervisor.kill_existing()

        self.rpc.initialize_config(daemon_config)

        await self.supervisor.spawn()
        self.supervisor.install_listeners(on_error=self._on_daemon_error, on_exit=self._on_daemon_exit)

        self.poller = HealthPoller(
            self.rpc,
            self.events,
            probe_interval_s=self.settings.probe_interval_s,
            heartbeat_interval_s=self.settings.poll_interval_s,
            probe_timeout_s=self.settings.probe_timeout_s,
        )
        self.poller.start(on_ready=self._on_ready, on_timeout=self._on_daemon_error)

    def _on_ready(self) -> None:
        self._finish(BootstrapResult.ready())

    def _on_daemon_error(self, error: DaemonRuntimeError) -> None:
        if self.result_channel.done:
            self.logger.warning(f"Daemon reported an error after bootstrap: {error.message}")
            return
        self._fail(error)

    def _on_daemon_exit(self, returncode: int) -> None:
        if self.result_channel.done:
            self.logger.info(f"Daemon exited with code {returncode}")
            return
        self._fail(DaemonRuntimeError(f"The daemon exited before it was ready (exit code {returncode})."))

    def _fail(self, error: DaemonError) -> None:
        if self.poller is not None:
            self.poller.stop()
        self._finish(BootstrapResult.from_error(error))

    def _finish(self, result: BootstrapResult) -> None:
        if not self.result_channel.resolve(result):
            self.logger.debug(f"Ignoring late bootstrap result: {result.message}")
            return

        log_bootstrap_result(self.logger, result)
        self.events.emit(DaemonEvent.BOOTSTRAPPED, result)

    def teardown(self) -> None:
        """
        End the session: cancel probe and heartbeat, send SIGTERM to the daemon.

        Does not wait for the daemon to exit.
        """
        if self.poller is not None:
            self.poller.shutdown()
        if self.supervisor is not None:
            self.supervisor.teardown()

    async def shutdown(self, timeout: float = 10.0) -> int | None:
        """
        Teardown and wait for the daemon to exit (used by the CLI).

        Returns:
            The daemon's exit code, or None if it was not running
        """
        self.teardown()

        returncode = None
        if self.supervisor is not None:
            returncode = await self.supervisor.stop(timeout)
            await self.supervisor.wait_listeners()

        await self.rpc.aclose()
        return returncode

    def get_status(self) -> dict:
        """Snapshot for logs and the CLI"""
        result = self.result_channel.result
        return {
            "binary": str(self.binary_path) if self.binary_path else None,
            "daemon_dir": str(self.daemon_dir),
            "pid": self.supervisor.pid if self.supervisor else None,
            "probe_state": self.poller.state.value if self.poller else None,
            "probes": self.poller.probe_count if self.poller else 0,
            "result": result.to_dict() if result else None,
        }


async def run_bootstrap(settings: DaemonSettings) -> tuple[BootstrapController, BootstrapResult]:
    """Convenience wrapper: build a controller and bootstrap the local daemon"""
    controller = BootstrapController(settings)
    result = await controller.start_local()
    return controller, result


__all__ = ["BootstrapController", "run_bootstrap"]
