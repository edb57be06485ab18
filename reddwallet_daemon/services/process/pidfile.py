"""
PID Record

The daemon's process id persisted as plain decimal text, so a daemon
left running by a crashed session can be found and stopped next time.
"""

import logging
from pathlib import Path

from ...common.logging_setup import get_component_logger


class PidRecord:
    """Single PID stored at a fixed path"""

    def __init__(self, path: Path, logger: logging.LoggerAdapter | None = None):
        self.path = Path(path)
        self.logger = logger or get_component_logger("process")

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> int | None:
        """
        Read the stored PID.

        Returns:
            The PID, or None if the file is missing, unreadable or not a number
        """
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.error(f"Failed to read pidfile {self.path}: {e}")
            return None

        try:
            return int(text)
        except ValueError:
            self.logger.warning(f"Pidfile {self.path} does not hold a PID: {text!r}")
            return None

    def write(self, pid: int) -> None:
        """Persist the PID, replacing any previous value. OSError propagates."""
        self.path.write_text(str(pid), encoding="utf-8")
        self.logger.debug(f"Wrote pidfile: {self.path} ({pid})")

    def remove(self) -> None:
        """Delete the record; a missing file is not an error."""
        try:
            self.path.unlink(missing_ok=True)
            self.logger.debug(f"Removed pidfile: {self.path}")
        except OSError as e:
            self.logger.error(f"Failed to remove pidfile {self.path}: {e}")
