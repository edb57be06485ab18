"""
Daemon Process Supervisor

Owns the one reddcoind child process of this session:
- Stops a daemon left over from a previous session (via the PID record)
- Spawns the daemon with the notification hooks wired to stdout
- Records its PID
- Relays its output and reacts to its exit
- Terminates it on shutdown
"""

import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable

import psutil

from ...common.events import DaemonEvent, EventBus
from ...common.exceptions import DaemonRuntimeError, SpawnError
from ...common.logging_setup import get_component_logger
from ..notifications.relay import NotificationRelay
from .pidfile import PidRecord

# How long to give a stale daemon to exit after SIGTERM
KILL_GRACE_S = 0.5
# Graceful stop timeout before escalating to SIGKILL
STOP_TIMEOUT_S = 10.0
# How long the exit watcher waits for output readers to drain
DRAIN_TIMEOUT_S = 1.0

NOTIFY_ARGUMENTS = (
    '-alertnotify=echo "ALERT:%s"',
    '-walletnotify=echo "WALLET:%s"',
    '-blocknotify=echo "BLOCK:%s"',
)

ErrorCallback = Callable[[DaemonRuntimeError], None]
ExitCallback = Callable[[int], None]


def _popen_kwargs() -> dict:
    """Platform-specific creation flags; no console window on Windows"""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {}


class ProcessSupervisor:
    """
    Supervises a single daemon process.

    At most one child is live at a time; the handle is released when the
    exit watcher sees the process end or after a confirmed stop().
    """

    def __init__(
        self,
        binary_path: Path,
        config_path: Path,
        daemon_dir: Path,
        pid_record: PidRecord,
        relay: NotificationRelay,
        events: EventBus,
        kill_grace_s: float = KILL_GRACE_S,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.binary_path = Path(binary_path)
        self.config_path = Path(config_path)
        self.daemon_dir = Path(daemon_dir)
        self.pid_record = pid_record
        self.relay = relay
        self.events = events
        self.kill_grace_s = kill_grace_s
        self.logger = logger or get_component_logger("process")

        self._process: asyncio.subprocess.Process | None = None
        self._tasks: list[asyncio.Task] = []
        self.last_returncode: int | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    def build_arguments(self) -> list[str]:
        """Daemon command line (hook commands are passed through verbatim)"""
        return [
            f"-conf={self.config_path}",
            f"-datadir={self.daemon_dir}",
            *NOTIFY_ARGUMENTS,
        ]

    def _is_daemon(self, process: psutil.Process) -> bool:
        """Whether a process is running our daemon binary (PIDs get reused)"""
        expected = self.binary_path.name
        if process.name() == expected:
            return True
        cmdline = process.cmdline()
        return bool(cmdline) and Path(cmdline[0]).name == expected

    async def kill_existing(self) -> bool:
        """
        Send SIGTERM to the daemon named in the PID record, if any.

        Always returns True: whether the old process is really gone is not
        verified, and a PID that no longer exists simply means there is
        nothing to stop. A PID now held by some other program is left alone.
        """
        if not self.pid_record.exists():
            return True

        pid = self.pid_record.read()
        if pid is None:
            return True

        try:
            process = psutil.Process(pid)
            if not self._is_daemon(process):
                self.logger.info(f"PID {pid} is now {process.name()!r}, not the daemon; leaving it alone")
                return True
            process.terminate()
        except psutil.NoSuchProcess:
            self.logger.info(f"No process with PID {pid}, nothing to stop")
            return True
        except (psutil.Error, ValueError) as e:
            self.logger.warning(f"Could not stop stale daemon (PID {pid}): {e}")
            return True

        self.logger.info(f"Sent SIGTERM to stale daemon (PID {pid})")
        await asyncio.sleep(self.kill_grace_s)
        return True

    async def spawn(self) -> int:
        """
        Launch the daemon and record its PID.

        Returns:
            PID of the new process

        Raises:
            SpawnError: a daemon is already running, the binary could not be
                executed, or the PID could not be recorded
        """
        if self.is_running:
            raise SpawnError(cause=f"daemon already running (PID {self.pid})")

        arguments = self.build_arguments()
        self.logger.info(f"Spawning {self.binary_path}", extra={"arguments": arguments})

        try:
            process = await asyncio.create_subprocess_exec(
                str(self.binary_path),
                *arguments,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **_popen_kwargs(),
            )
        except OSError as e:
            self.logger.error(f"Failed to spawn daemon: {e}")
            raise SpawnError(cause=str(e)) from e

        self._process = process
        self.last_returncode = None

        try:
            self.pid_record.write(process.pid)
        except OSError as e:
            self.logger.error(f"Failed to write pidfile {self.pid_record.path}: {e}")
            await self.stop()
            raise SpawnError(cause=str(e)) from e

        self.logger.info(f"Started daemon (PID: {process.pid})")
        return process.pid

    def install_listeners(
        self,
        on_error: ErrorCallback | None = None,
        on_exit: ExitCallback | None = None,
    ) -> None:
        """
        Start relaying stdout/stderr and watching for exit.

        Args:
            on_error: called with the failure built from each stderr line
            on_exit: called with the return code after the PID record is removed
        """
        process = self._process
        if process is None:
            raise RuntimeError("install_listeners() called before spawn()")

        def handle_stderr(line: str) -> None:
            error = self.relay.classify_stderr(line)
            if on_error:
                on_error(error)

        loop = asyncio.get_running_loop()
        readers = [
            loop.create_task(self._read_stream(process.stdout, self.relay.handle_stdout, "stdout")),
            loop.create_task(self._read_stream(process.stderr, handle_stderr, "stderr")),
        ]
        watcher = loop.create_task(self._watch_exit(process, readers, on_exit))
        self._tasks = [*readers, watcher]

    async def _read_stream(
        self,
        stream: asyncio.StreamReader | None,
        handler: Callable[[str], object],
        name: str,
    ) -> None:
        if stream is None:
            return

        while True:
            try:
                raw = await stream.readline()
            except ValueError as e:
                # Line longer than the stream limit; skip it
                self.logger.warning(f"Dropped oversized {name} line from daemon: {e}")
                continue

            if not raw:
                break

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            try:
                handler(line)
            except Exception as e:
                self.logger.error(f"Error handling daemon {name} line: {e}", exc_info=True)

        self.logger.debug(f"Daemon {name} closed")

    async def _watch_exit(
        self,
        process: asyncio.subprocess.Process,
        readers: list[asyncio.Task],
        on_exit: ExitCallback | None,
    ) -> None:
        returncode = await process.wait()

        # Let the last lines through before reporting the exit
        await asyncio.wait(readers, timeout=DRAIN_TIMEOUT_S)

        self.on_child_exit(process, returncode)
        if on_exit:
            try:
                on_exit(returncode)
            except Exception as e:
                self.logger.error(f"Exit callback failed: {e}", exc_info=True)

    def on_child_exit(self, process: asyncio.subprocess.Process, returncode: int) -> None:
        """Clean up after the daemon ended: drop the PID record and the handle"""
        self.pid_record.remove()

        if self._process is process:
            self._process = None
        self.last_returncode = returncode

        self.logger.info(f"Daemon child process has ended (exit code {returncode})")
        self.events.emit(DaemonEvent.EXITED, returncode)

    def teardown(self) -> bool:
        """
        Send SIGTERM to the daemon without waiting for it to exit.

        Returns:
            True if a signal was sent
        """
        process = self._process
        if process is None or process.returncode is not None:
            return False

        try:
            process.terminate()
        except ProcessLookupError:
            return False

        self.logger.info(f"Sent SIGTERM to daemon (PID {process.pid})")
        return True

    async def stop(self, timeout: float = STOP_TIMEOUT_S) -> int | None:
        """
        Terminate the daemon and wait for it, escalating to SIGKILL.

        Returns:
            The exit code, or None if no daemon was running
        """
        process = self._process
        if process is None:
            return None

        if process.returncode is None:
            self.teardown()
            try:
                await asyncio.wait_for(process.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.warning(f"Daemon did not exit within {timeout}s, killing")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        if self._process is process:
            self._process = None
        self.last_returncode = process.returncode
        return process.returncode

    async def wait_listeners(self, timeout: float = DRAIN_TIMEOUT_S * 2) -> None:
        """Give the readers and exit watcher time to finish, then cancel the rest"""
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)
        self.cancel_listeners()

    def cancel_listeners(self) -> None:
        """Cancel output readers and the exit watcher"""
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks = []
