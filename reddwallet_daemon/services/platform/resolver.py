"""
Platform Resolver

Maps the current operating system and architecture to the daemon binary
shipped with the wallet, and provides the per-user data directory the
daemon lives in.
"""

import logging
import os
import platform
import sys
from pathlib import Path
from typing import Mapping

from ...common.config import (
    APP_NAME,
    DAEMON_BINARIES,
    MACHINE_ALIASES,
    Architecture,
    DaemonSettings,
    Platform,
    PlatformBinaries,
)
from ...common.exceptions import PlatformUnsupportedError
from ...common.logging_setup import get_component_logger


class PlatformResolver:
    """
    Resolves the daemon binary for a platform.

    platform_id and machine default to the running interpreter's
    sys.platform and platform.machine(); tests pass their own.
    """

    def __init__(
        self,
        binaries: Mapping[Platform, PlatformBinaries] = DAEMON_BINARIES,
        base_dir: Path | None = None,
        platform_id: str | None = None,
        machine: str | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.binaries = binaries
        self.base_dir = base_dir or Path.cwd()
        self.platform_id = platform_id if platform_id is not None else sys.platform
        self.machine = machine if machine is not None else platform.machine()
        self.logger = logger or get_component_logger("platform")

    @property
    def platform(self) -> Platform | None:
        """The current platform, or None if it is not one we know"""
        try:
            return Platform(self.platform_id)
        except ValueError:
            return None

    @property
    def architecture(self) -> Architecture | None:
        return MACHINE_ALIASES.get(self.machine.lower())

    @property
    def platform_label(self) -> str:
        """Human-readable platform string, e.g. 'linux x86_64'"""
        return f"{self.platform_id} {self.machine}"

    def has_valid_daemon(self) -> bool:
        """True if a daemon binary is shipped for the current platform"""
        current = self.platform
        return current is not None and current in self.binaries

    def resolve_path(self) -> Path:
        """
        Get the path to the daemon binary.

        Returns:
            Architecture-specific binary if there is one, else the platform default

        Raises:
            PlatformUnsupportedError: no binaries for this platform
        """
        if not self.has_valid_daemon():
            raise PlatformUnsupportedError(self.platform_id)

        relative = self.binaries[self.platform].path_for(self.architecture)
        path = Path(relative)
        if not path.is_absolute():
            path = self.base_dir / path

        self.logger.debug(f"Resolved daemon binary for {self.platform_label}: {path}")
        return path

    def is_windows(self) -> bool:
        return self.platform is Platform.WINDOWS


def get_app_data_dir(app_name: str = APP_NAME, platform_id: str | None = None) -> Path:
    """
    Get the per-user application data directory.

    Returns:
        Path: - Windows: %APPDATA%/<app>
              - macOS: ~/Library/Application Support/<app>
              - Linux: $XDG_DATA_HOME/<app> or ~/.local/share/<app>
    """
    platform_id = platform_id if platform_id is not None else sys.platform

    if platform_id == Platform.WINDOWS.value:
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / app_name
        return Path.home() / "AppData" / "Roaming" / app_name

    if platform_id == Platform.MACOS.value:
        return Path.home() / "Library" / "Application Support" / app_name

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / app_name
    return Path.home() / ".local" / "share" / app_name


def resolve_daemon_dir(settings: DaemonSettings) -> Path:
    """The daemon data directory: <app data>/daemon unless configured"""
    if settings.uses_app_dir():
        return get_app_data_dir() / "daemon"
    return Path(settings.directory).expanduser()


def ensure_executable(
    path: Path,
    platform_id: str | None = None,
    logger: logging.LoggerAdapter | None = None,
) -> bool:
    """
    Make the daemon binary executable on *nix (chmod 775).

    Best-effort: a failure is logged and reported as False, never raised.
    Windows needs nothing and returns True.
    """
    logger = logger or get_component_logger("platform")
    platform_id = platform_id if platform_id is not None else sys.platform

    if platform_id == Platform.WINDOWS.value:
        return True

    logger.info(f"Chmodding {path}")
    try:
        os.chmod(path, 0o775)
    except OSError as e:
        logger.warning(f"Could not chmod {path}: {e}")
        return False

    return True
