"""
Configuration Dataclasses

Type-safe structures for the supervisor: the platform binary table and
the settings loaded from the supervisor's YAML file. The daemon's own
reddcoin.conf is handled by services.config.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml

from .logging_setup import get_component_logger

logger = get_component_logger("settings")

APP_NAME = "ReddWallet"

# Sentinel for "use the application data directory"
APP_DIR_SENTINEL = "$APP"

CONFIG_FILENAME = "reddcoin.conf"
PID_FILENAME = "reddwallet.pid"
PASSWORD_PLACEHOLDER = "$PASSWORD"

SETTINGS_ENV_VAR = "REDDWALLET_DAEMON_CONFIG"


class Platform(str, Enum):
    """Operating systems a daemon binary is shipped for (sys.platform values)"""
    LINUX = "linux"
    WINDOWS = "win32"
    MACOS = "darwin"


class Architecture(str, Enum):
    """CPU architectures distinguished by the binary table"""
    X32 = "x32"
    X64 = "x64"


# platform.machine() values -> Architecture
MACHINE_ALIASES: Mapping[str, Architecture] = MappingProxyType({
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "x64": Architecture.X64,
    "i386": Architecture.X32,
    "i686": Architecture.X32,
    "x86": Architecture.X32,
})


@dataclass(frozen=True)
class PlatformBinaries:
    """Binaries shipped for one platform"""
    default: str
    by_arch: Mapping[Architecture, str] = field(default_factory=dict)

    def path_for(self, arch: Architecture | None) -> str:
        """Architecture-specific path, else the platform default"""
        if arch is not None and arch in self.by_arch:
            return self.by_arch[arch]
        return self.default


DAEMON_BINARIES: Mapping[Platform, PlatformBinaries] = MappingProxyType({
    Platform.LINUX: PlatformBinaries(
        default="daemons/reddcoind-linux-32",
        by_arch=MappingProxyType({
            Architecture.X32: "daemons/reddcoind-linux-32",
            Architecture.X64: "daemons/reddcoind-linux-64",
        }),
    ),
    Platform.WINDOWS: PlatformBinaries(
        default="daemons/reddcoind-win-32.exe",
        by_arch=MappingProxyType({
            Architecture.X32: "daemons/reddcoind-win-32.exe",
            Architecture.X64: "daemons/reddcoind-win-32.exe",
        }),
    ),
    Platform.MACOS: PlatformBinaries(
        default="daemons/reddcoind-mac-64",
        by_arch=MappingProxyType({
            Architecture.X64: "daemons/reddcoind-mac-64",
        }),
    ),
})


@dataclass
class DaemonSettings:
    """Supervisor settings (the `local_daemon` and `rpc` sections)"""
    directory: str = APP_DIR_SENTINEL
    binaries_dir: Path = field(default_factory=Path.cwd)
    template: str = "daemons/reddcoin.default.conf"
    poll_interval_s: float = 10.0
    probe_interval_s: float = 1.0
    probe_timeout_s: float | None = None
    kill_grace_s: float = 0.5
    rpc_timeout_s: float = 5.0
    debug: bool = False

    @property
    def template_path(self) -> Path:
        path = Path(self.template)
        return path if path.is_absolute() else self.binaries_dir / path

    def uses_app_dir(self) -> bool:
        return self.directory == APP_DIR_SENTINEL


def load_settings_dict(data: dict) -> DaemonSettings:
    """Load DaemonSettings from a dictionary (e.g., parsed YAML)"""
    local = data.get("local_daemon") or {}
    rpc = data.get("rpc") or {}

    probe_timeout = local.get("probe_timeout")

    return DaemonSettings(
        directory=str(local.get("directory", APP_DIR_SENTINEL)),
        binaries_dir=Path(local.get("binaries_dir", ".")).expanduser().resolve(),
        template=local.get("template", "daemons/reddcoin.default.conf"),
        poll_interval_s=float(local.get("poll_interval", 10)),
        probe_interval_s=float(local.get("probe_interval", 1)),
        probe_timeout_s=float(probe_timeout) if probe_timeout is not None else None,
        kill_grace_s=float(local.get("kill_grace", 0.5)),
        rpc_timeout_s=float(rpc.get("timeout", 5)),
        debug=bool(data.get("debug", False)),
    )


def find_settings_path(config_path: str | None = None) -> Path:
    """Find the settings file: explicit path, environment, then ./config.yaml"""
    if config_path:
        return Path(config_path)

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)

    return Path("config.yaml")


def load_settings(config_path: str | None = None) -> DaemonSettings:
    """
    Load supervisor settings from YAML.

    A missing or malformed file falls back to defaults; the supervisor
    can always start with the built-in binary table.
    """
    path = find_settings_path(config_path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file not found: {path}, using defaults")
        return DaemonSettings()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing settings {path}: {e}")
        return DaemonSettings()

    if not isinstance(data, dict):
        logger.error(f"Settings file {path} must contain a mapping, using defaults")
        return DaemonSettings()

    return load_settings_dict(data)
