"""
Tests for the command line entry point and package imports.
"""

import importlib
import sys

import pytest

from reddwallet_daemon import __version__
from reddwallet_daemon.bootstrap import BootstrapController
from reddwallet_daemon.common.config import DaemonSettings
from reddwallet_daemon.common.result import BootstrapResult, ResultCode
from reddwallet_daemon import main as main_module
from reddwallet_daemon.main import interrupted_code, main, main_async, print_paths
from reddwallet_daemon.services.platform import PlatformResolver

MODULES = [
    "reddwallet_daemon.bootstrap",
    "reddwallet_daemon.main",
    "reddwallet_daemon.common",
    "reddwallet_daemon.services.config",
    "reddwallet_daemon.services.health",
    "reddwallet_daemon.services.notifications",
    "reddwallet_daemon.services.platform",
    "reddwallet_daemon.services.process",
    "reddwallet_daemon.services.rpc",
]


class TestImports:
    """Every component imports cleanly."""

    @pytest.mark.parametrize("module", MODULES)
    def test_import(self, module):
        assert importlib.import_module(module) is not None

    def test_common_exports(self):
        common = importlib.import_module("reddwallet_daemon.common")
        for name in common.__all__:
            assert hasattr(common, name), name


class TestDryRun:
    """Tests for --dry-run."""

    def test_print_paths_unsupported(self, tmp_path, capsys):
        settings = DaemonSettings(directory=str(tmp_path / "daemon"), binaries_dir=tmp_path)
        resolver = PlatformResolver(base_dir=tmp_path, platform_id="sunos5", machine="sun4v")

        code = print_paths(BootstrapController(settings, resolver=resolver))

        assert code == ResultCode.PLATFORM_UNSUPPORTED
        assert "sunos5 sun4v" in capsys.readouterr().out

    def test_print_paths_supported(self, tmp_path, capsys):
        settings = DaemonSettings(directory=str(tmp_path / "daemon"), binaries_dir=tmp_path)
        resolver = PlatformResolver(base_dir=tmp_path, platform_id="linux", machine="x86_64")

        code = print_paths(BootstrapController(settings, resolver=resolver))

        out = capsys.readouterr().out
        assert code == ResultCode.READY
        assert "reddcoind-linux-64 (MISSING)" in out
        assert str(tmp_path / "daemon" / "reddwallet.pid") in out
        assert not (tmp_path / "daemon").exists()

    def test_main_dry_run(self, tmp_path, monkeypatch, capsys):
        config = tmp_path / "config.yaml"
        config.write_text(
            f"local_daemon:\n  directory: {tmp_path / 'daemon'}\n  binaries_dir: {tmp_path}\n",
            encoding="utf-8",
        )
        monkeypatch.setattr(sys, "argv", ["reddwallet-daemon", "--config", str(config), "--dry-run"])

        with pytest.raises(SystemExit):
            main()

        out = capsys.readouterr().out
        assert f"v{__version__}" in out
        assert "Dry run mode" in out


class TestMainAsync:
    """Tests for the session runner."""

    @pytest.mark.skipif(sys.platform not in ("linux", "win32", "darwin"), reason="needs a shipped platform")
    async def test_failed_bootstrap_returns_code(self, tmp_path, capsys):
        settings = DaemonSettings(directory=str(tmp_path / "daemon"), binaries_dir=tmp_path)

        code = await main_async(settings)

        assert code == ResultCode.DAEMON_ERROR
        assert "FAILED [2]: Cannot find the daemon" in capsys.readouterr().out


class TestInterrupt:
    """Exit status when Ctrl+C escapes the event loop."""

    def _run_interrupted(self, tmp_path, monkeypatch, resolve=None):
        config = tmp_path / "config.yaml"
        config.write_text(f"local_daemon:\n  directory: {tmp_path / 'daemon'}\n", encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["reddwallet-daemon", "--config", str(config)])

        created = []

        def make_controller(*args, **kwargs):
            created.append(BootstrapController(*args, **kwargs))
            return created[-1]

        def interrupted_run(coro):
            coro.close()
            if resolve is not None:
                created[-1].result_channel.resolve(resolve)
            raise KeyboardInterrupt

        monkeypatch.setattr(main_module, "BootstrapController", make_controller)
        monkeypatch.setattr(main_module.asyncio, "run", interrupted_run)

        with pytest.raises(SystemExit) as exc_info:
            main()
        return exc_info.value.code

    def test_interrupt_before_result_is_failure(self, tmp_path, monkeypatch, capsys):
        code = self._run_interrupted(tmp_path, monkeypatch)

        assert code == ResultCode.DAEMON_ERROR
        assert "Stopped by user" in capsys.readouterr().out

    def test_interrupt_after_ready_keeps_result(self, tmp_path, monkeypatch):
        code = self._run_interrupted(tmp_path, monkeypatch, resolve=BootstrapResult.ready())

        assert code == ResultCode.READY

    def test_interrupt_after_failure_keeps_code(self, tmp_path, monkeypatch):
        failed = BootstrapResult.failure(ResultCode.CONFIG_ERROR, "bad config")

        assert self._run_interrupted(tmp_path, monkeypatch, resolve=failed) == ResultCode.CONFIG_ERROR

    def test_interrupted_code_without_result(self, tmp_path):
        controller = BootstrapController(DaemonSettings(directory=str(tmp_path / "daemon")))

        assert interrupted_code(controller) == ResultCode.DAEMON_ERROR
