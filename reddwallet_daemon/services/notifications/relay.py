"""
Notification Relay

Turns daemon output lines into application events.

stdout carries the -blocknotify/-alertnotify/-walletnotify hooks, which
the supervisor configures to `echo "BLOCK:%s"` etc. stderr carries
startup failures.
"""

import logging
import re

from ...common.events import DaemonEvent, EventBus
from ...common.exceptions import DaemonRuntimeError
from ...common.logging_setup import get_component_logger, log_notification

EXEC_FAILURE_PATTERN = re.compile(r"^execvp\(\)")
CORRUPT_DB_SIGNATURE = "Corrupted block database detected"
CORRUPT_DB_MESSAGE = (
    "Corrupt block database detected, please reindex or delete the block database to rebuild it."
)

# Checked in order; the first keyword found in a line wins
NOTIFICATION_KEYWORDS: tuple[tuple[str, DaemonEvent], ...] = (
    ("BLOCK", DaemonEvent.BLOCK),
    ("ALERT", DaemonEvent.ALERT),
    ("WALLET", DaemonEvent.WALLET),
)


class NotificationRelay:
    """Classifies daemon output into domain events"""

    def __init__(self, events: EventBus, logger: logging.LoggerAdapter | None = None):
        self.events = events
        self.logger = logger or get_component_logger("notifications")

    def handle_stdout(self, line: str) -> DaemonEvent | None:
        """
        Emit at most one notification event for a stdout line.

        Returns:
            The emitted event, or None if the line held no keyword
        """
        for keyword, event in NOTIFICATION_KEYWORDS:
            if keyword in line:
                self.events.emit(event)
                log_notification(self.logger, keyword, line)
                return event

        self.logger.debug(f"daemon: {line}")
        return None

    def classify_stderr(self, line: str) -> DaemonRuntimeError:
        """
        Build the failure for a stderr line.

        Every stderr line produces a failure. Lines that match the exec
        failure signature or mention "error" are marked fatal and keep
        their text; a corrupted block database is reworded into
        instructions for the user.

        TODO: unmatched lines still fail the bootstrap; confirm with
        product whether they should only be logged.
        """
        fatal = bool(EXEC_FAILURE_PATTERN.search(line)) or "error" in line.lower()

        if fatal:
            self.logger.error(f"Failed to start child process. {line}")
            return DaemonRuntimeError(line, fatal=True)

        message = line
        if CORRUPT_DB_SIGNATURE in line:
            message = CORRUPT_DB_MESSAGE

        self.logger.warning(f"daemon stderr: {line}")
        return DaemonRuntimeError(message, fatal=False)
