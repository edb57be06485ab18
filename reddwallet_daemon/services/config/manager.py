"""
Daemon Configuration Manager

Makes sure the daemon data directory and reddcoin.conf exist, generating
the file from the bundled template with a fresh RPC password, and reads
it back into a flat key/value mapping.

Only a restrictive `key=value` subset is understood: a line is kept only
if splitting it on '=' yields exactly two parts. Lines with no '=' or
with more than one (e.g. `rpcpassword=abc=def`) are dropped.
"""

import asyncio
import logging
import os
import random
import secrets
from pathlib import Path

from ...common.config import CONFIG_FILENAME, PASSWORD_PLACEHOLDER
from ...common.exceptions import ConfigInitError, ConfigParseError
from ...common.logging_setup import get_component_logger

# Parsed reddcoin.conf
DaemonConfig = dict[str, str]

RPC_PASSWORD_BYTES = 32


def generate_rpc_password(
    nbytes: int = RPC_PASSWORD_BYTES,
    logger: logging.LoggerAdapter | None = None,
) -> str:
    """
    Generate a hex-encoded random RPC password (2 * nbytes characters).

    Uses the OS CSPRNG. Only if the OS has no randomness source does it
    fall back to the `random` module, which is NOT cryptographically
    secure; that case is logged as a warning.
    """
    try:
        return secrets.token_hex(nbytes)
    except NotImplementedError:
        logger = logger or get_component_logger("config")
        logger.warning("No OS randomness source, falling back to a weaker generator for the RPC password")
        return f"{random.getrandbits(nbytes * 8):0{nbytes * 2}x}"


def parse_config_text(text: str) -> DaemonConfig:
    """
    Parse reddcoin.conf contents.

    >>> parse_config_text("a=1\\nb=2=3\\nc\\n")
    {'a': '1'}
    """
    config: DaemonConfig = {}
    for line in text.split("\n"):
        parts = line.split("=")
        if len(parts) == 2:
            config[parts[0].strip()] = parts[1].strip()
    return config


class ConfigManager:
    """
    Owns the daemon data directory and reddcoin.conf.

    Stores:
    - daemon_dir: the daemon's -datadir
    - config_path: <daemon_dir>/reddcoin.conf
    - daemon_config: last parsed configuration
    """

    def __init__(
        self,
        daemon_dir: Path,
        template_path: Path,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.daemon_dir = Path(daemon_dir)
        self.config_path = self.daemon_dir / CONFIG_FILENAME
        self.template_path = Path(template_path)
        self.logger = logger or get_component_logger("config")
        self.daemon_config: DaemonConfig = {}

    async def ensure_config(self) -> bool:
        """
        Create the data directory and config file if they are missing.

        An existing config file is never touched.

        Returns:
            True if a new config file was written, False if one already existed

        Raises:
            ConfigInitError: directory/file could not be created or template missing
        """
        try:
            self.logger.debug("Checking if the daemon directory exists...")
            if not self.daemon_dir.exists():
                self.daemon_dir.mkdir(parents=True)
                self.logger.info(f"Created directory for {self.daemon_dir}")

            self.logger.debug(f"Checking if {self.config_path.name} exists...")
            if self.config_path.exists():
                return False

            self.logger.info("Copying default config over to app data dir")
            try:
                template = self.template_path.read_text(encoding="utf-8")
            except FileNotFoundError as e:
                self.logger.error(f"Default daemon configuration missing: {self.template_path}")
                raise ConfigInitError(f"Default daemon configuration not found: {self.template_path}") from e

            self.logger.info("Generating random password for daemon rpc...")
            password = await asyncio.to_thread(generate_rpc_password, RPC_PASSWORD_BYTES, self.logger)

            self._write_config(template.replace(PASSWORD_PLACEHOLDER, password, 1))
        except OSError as e:
            self.logger.error(f"Error initializing daemon configuration: {e}")
            raise ConfigInitError(f"Error initializing daemon configuration. {e}") from e

        self.logger.info(f"Copied default daemon configuration file to {self.config_path}")
        return True

    def _write_config(self, text: str) -> None:
        """Write to a temp file, then rename it over reddcoin.conf. No partial file is left behind."""
        temp_path = self.config_path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.config_path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    def parse_config(self) -> DaemonConfig:
        """
        Read reddcoin.conf into daemon_config.

        Raises:
            ConfigParseError: file missing or unreadable
        """
        try:
            text = self.config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read {self.config_path}: {e}")
            raise ConfigParseError() from e

        self.daemon_config = parse_config_text(text)
        self.logger.debug(
            f"Parsed {len(self.daemon_config)} settings from {self.config_path}",
            extra={"keys": sorted(self.daemon_config)},
        )
        return self.daemon_config
