"""
Daemon Supervisor Test Configuration and Fixtures

Provides a scripted RPC client, a throwaway install layout (binary
table, template, data dir) under tmp_path, and helpers for writing
small /bin/sh scripts that stand in for reddcoind.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Callable

import pytest

from reddwallet_daemon.common.config import DaemonSettings
from reddwallet_daemon.common.events import EventBus
from reddwallet_daemon.common.exceptions import RpcError
from reddwallet_daemon.services.platform import PlatformResolver

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh daemon scripts")

TEMPLATE_TEXT = (
    "server=1\n"
    "listen=1\n"
    "rpcuser=reddwalletrpc\n"
    "rpcpassword=$PASSWORD\n"
    "rpcport=45443\n"
    "rpcallowip=127.0.0.1\n"
)

LINUX_X64_BINARY = "daemons/reddcoind-linux-64"


class FakeRpcClient:
    """
    Scripted stand-in for DaemonRpcClient.

    Each probe() consumes the next outcome: an exception is raised,
    anything else is a successful reply. The last outcome repeats once
    the script runs out; with no script every probe is refused.
    """

    def __init__(self, outcomes: list | None = None):
        self.outcomes = list(outcomes or [])
        self.config: dict | None = None
        self.calls = 0
        self.closed = False

    def initialize_config(self, config: dict) -> None:
        self.config = dict(config)

    async def probe(self) -> None:
        self.calls += 1
        if not self.outcomes:
            raise RpcError("ECONNREFUSED", "connection refused")

        outcome = self.outcomes[0] if len(self.outcomes) == 1 else self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome

    async def aclose(self) -> None:
        self.closed = True


def write_script(path: Path, body: str) -> Path:
    """Write an executable /bin/sh script"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    os.chmod(path, 0o755)
    return path


async def eventually(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll predicate until it holds or the timeout expires"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def events():
    """Fresh event bus"""
    return EventBus()


@pytest.fixture
def fake_rpc():
    """RPC client that refuses every probe until given outcomes"""
    return FakeRpcClient()


@pytest.fixture
def install_dir(tmp_path):
    """Install layout with the config template but no daemon binary"""
    template = tmp_path / "daemons" / "reddcoin.default.conf"
    template.parent.mkdir(parents=True)
    template.write_text(TEMPLATE_TEXT, encoding="utf-8")
    return tmp_path


@pytest.fixture
def daemon_dir(tmp_path):
    """Daemon data directory (not created)"""
    return tmp_path / "appdata" / "daemon"


@pytest.fixture
def settings(install_dir, daemon_dir):
    """Fast settings pointing at the temporary install"""
    return DaemonSettings(
        directory=str(daemon_dir),
        binaries_dir=install_dir,
        poll_interval_s=0.1,
        probe_interval_s=0.02,
        kill_grace_s=0.01,
        rpc_timeout_s=1.0,
    )


@pytest.fixture
def linux_resolver(install_dir):
    """Resolver pinned to linux x86_64"""
    return PlatformResolver(base_dir=install_dir, platform_id="linux", machine="x86_64")


@pytest.fixture
def daemon_script(install_dir):
    """Factory writing the linux x64 daemon binary as a shell script"""
    def _write(body: str) -> Path:
        return write_script(install_dir / LINUX_X64_BINARY, body)
    return _write
