"""
Integration tests for BootstrapController.

Runs the whole pipeline against a /bin/sh script standing in for
reddcoind and a scripted RPC client.
"""

import asyncio

import pytest

from conftest import FakeRpcClient, eventually, posix_only
from reddwallet_daemon.bootstrap import BootstrapController
from reddwallet_daemon.common.events import DaemonEvent
from reddwallet_daemon.common.exceptions import RpcError
from reddwallet_daemon.common.result import ResultCode
from reddwallet_daemon.services.health import PollState
from reddwallet_daemon.services.notifications.relay import CORRUPT_DB_MESSAGE
from reddwallet_daemon.services.platform import PlatformResolver

UNENCRYPTED = RpcError(-15, "Error: running with an unencrypted wallet, but walletlock was called.")


@pytest.fixture
async def make_controller(settings, linux_resolver, events):
    """Factory for controllers; every controller is shut down after the test"""
    created = []

    def _make(rpc=None, resolver=None):
        controller = BootstrapController(
            settings,
            events=events,
            rpc=rpc or FakeRpcClient(),
            resolver=resolver or linux_resolver,
        )
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        await controller.shutdown(timeout=2)


class TestPreCheck:
    """Failures before anything is spawned."""

    async def test_unsupported_platform(self, make_controller, install_dir, daemon_dir, events):
        """Code 1, and the filesystem is never touched."""
        resolver = PlatformResolver(base_dir=install_dir, platform_id="sunos5", machine="sun4v")
        controller = make_controller(resolver=resolver)

        result = await controller.start_local()

        assert result.success is False
        assert result.code == ResultCode.PLATFORM_UNSUPPORTED
        assert result.message == "This operating system does not support running the Reddcoin daemon."
        assert not daemon_dir.exists()
        assert [e.payload for e in events.get_history(DaemonEvent.BOOTSTRAPPED)] == [result]

    async def test_binary_missing(self, make_controller, daemon_dir):
        result = await make_controller().start_local()

        assert result.code == ResultCode.DAEMON_ERROR
        assert result.message == "Cannot find the daemon for this operating system: linux x86_64"
        assert not daemon_dir.exists()

    async def test_template_missing(self, make_controller, install_dir, daemon_script):
        daemon_script("exec sleep 30")
        (install_dir / "daemons" / "reddcoin.default.conf").unlink()
        controller = make_controller()

        result = await controller.start_local()

        assert result.code == ResultCode.CONFIG_ERROR
        assert controller.supervisor is None

    async def test_only_runs_once(self, make_controller, install_dir):
        resolver = PlatformResolver(base_dir=install_dir, platform_id="sunos5", machine="sun4v")
        controller = make_controller(resolver=resolver)
        await controller.start_local()

        with pytest.raises(RuntimeError):
            await controller.start_local()


@posix_only
class TestLocalDaemon:
    """Full pipeline with a spawned script."""

    async def test_ready(self, make_controller, daemon_script, daemon_dir, events):
        daemon_script('echo "BLOCK:0000abcd"\nexec sleep 30')
        rpc = FakeRpcClient([RpcError("ECONNREFUSED"), UNENCRYPTED])
        controller = make_controller(rpc=rpc)

        result = await asyncio.wait_for(controller.start_local(), timeout=5)

        assert result.success is True
        assert result.code == ResultCode.READY
        assert result.message == "Daemon Ready"
        assert controller.poller.state is PollState.READY
        assert controller.poller.heartbeat.running

        # Config was generated, parsed and handed to the RPC client
        assert (daemon_dir / "reddcoin.conf").exists()
        assert rpc.config == controller.daemon_config
        assert len(rpc.config["rpcpassword"]) == 64

        # PID recorded for the next session
        pid_file = daemon_dir / "reddwallet.pid"
        assert int(pid_file.read_text()) == controller.supervisor.pid

        assert await eventually(lambda: len(events.get_history(DaemonEvent.BLOCK)) >= 1)
        assert [e.payload for e in events.get_history(DaemonEvent.BOOTSTRAPPED)] == [result]

    async def test_shutdown_stops_daemon(self, make_controller, daemon_script, daemon_dir, events):
        daemon_script("exec sleep 30")
        controller = make_controller(rpc=FakeRpcClient([None]))
        await asyncio.wait_for(controller.start_local(), timeout=5)

        returncode = await controller.shutdown(timeout=2)

        assert returncode is not None
        assert not controller.poller.heartbeat.running
        assert not (daemon_dir / "reddwallet.pid").exists()
        assert len(events.get_history(DaemonEvent.EXITED)) == 1

    async def test_stderr_error_fails(self, make_controller, daemon_script):
        daemon_script('echo "Error: Cannot obtain a lock on data directory" >&2\nexec sleep 30')
        controller = make_controller()

        result = await asyncio.wait_for(controller.start_local(), timeout=5)

        assert result.success is False
        assert result.code == ResultCode.DAEMON_ERROR
        assert result.message == "Error: Cannot obtain a lock on data directory"
        assert controller.poller.state is PollState.STOPPED

    async def test_corrupt_database(self, make_controller, daemon_script):
        daemon_script('echo "Corrupted block database detected" >&2\nexec sleep 30')

        result = await asyncio.wait_for(make_controller().start_local(), timeout=5)

        assert result.code == ResultCode.DAEMON_ERROR
        assert result.message == CORRUPT_DB_MESSAGE

    async def test_exit_before_ready(self, make_controller, daemon_script, daemon_dir):
        daemon_script("exit 3")

        result = await asyncio.wait_for(make_controller().start_local(), timeout=5)

        assert result.code == ResultCode.DAEMON_ERROR
        assert result.message == "The daemon exited before it was ready (exit code 3)."
        assert not (daemon_dir / "reddwallet.pid").exists()

    async def test_late_errors_do_not_change_result(self, make_controller, daemon_script, events):
        """After Ready, stderr output and exit are only logged."""
        daemon_script('sleep 0.3\necho "error: late failure" >&2\nexit 1')
        controller = make_controller(rpc=FakeRpcClient([None]))

        result = await asyncio.wait_for(controller.start_local(), timeout=5)
        assert await eventually(lambda: len(events.get_history(DaemonEvent.EXITED)) == 1)

        assert result.success is True
        assert controller.result_channel.result is result
        assert controller.result_channel.ignored_count == 0
        assert len(events.get_history(DaemonEvent.BOOTSTRAPPED)) == 1

    async def test_existing_config_reused(self, make_controller, daemon_script, daemon_dir):
        daemon_script("exec sleep 30")
        daemon_dir.mkdir(parents=True)
        (daemon_dir / "reddcoin.conf").write_text("rpcuser=alice\nrpcpassword=pw\nrpcport=1234\n")
        rpc = FakeRpcClient([None])

        await asyncio.wait_for(make_controller(rpc=rpc).start_local(), timeout=5)

        assert rpc.config == {"rpcuser": "alice", "rpcpassword": "pw", "rpcport": "1234"}

    async def test_probe_timeout(self, make_controller, daemon_script, settings):
        settings.probe_timeout_s = 0.1
        daemon_script("exec sleep 30")

        result = await asyncio.wait_for(make_controller().start_local(), timeout=5)

        assert result.code == ResultCode.DAEMON_ERROR
        assert "did not become ready" in result.message

    async def test_status(self, make_controller, daemon_script):
        daemon_script("exec sleep 30")
        controller = make_controller(rpc=FakeRpcClient([None]))
        await asyncio.wait_for(controller.start_local(), timeout=5)

        status = controller.get_status()

        assert status["probe_state"] == "ready"
        assert status["pid"] == controller.supervisor.pid
        assert status["result"] == {"result": True, "code": 0, "message": "Daemon Ready"}
