"""
Common Utilities

Shared modules used across all supervisor components:
- config.py - Settings dataclasses and the platform binary table
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- scheduler.py - Cancellable interval loop
- events.py - Publish/subscribe event bus
- result.py - Bootstrap result and one-shot result channel
"""

from .result import BootstrapResult, ResultChannel, ResultCode
from .config import (
    APP_NAME,
    DAEMON_BINARIES,
    Architecture,
    DaemonSettings,
    Platform,
    PlatformBinaries,
    load_settings,
    load_settings_dict,
)
from .exceptions import (
    DaemonError,
    PlatformUnsupportedError,
    BinaryMissingError,
    ConfigInitError,
    ConfigParseError,
    SpawnError,
    DaemonRuntimeError,
    RpcError,
)
from .events import DaemonEvent, Event, EventBus, Subscription
from .logging_setup import (
    setup_logging,
    get_component_logger,
    set_debug,
    log_bootstrap_result,
    log_notification,
)
from .scheduler import ScheduledLoop

__all__ = [
    # Result
    "BootstrapResult",
    "ResultChannel",
    "ResultCode",
    # Config
    "APP_NAME",
    "DAEMON_BINARIES",
    "Architecture",
    "DaemonSettings",
    "Platform",
    "PlatformBinaries",
    "load_settings",
    "load_settings_dict",
    # Exceptions
    "DaemonError",
    "PlatformUnsupportedError",
    "BinaryMissingError",
    "ConfigInitError",
    "ConfigParseError",
    "SpawnError",
    "DaemonRuntimeError",
    "RpcError",
    # Events
    "DaemonEvent",
    "Event",
    "EventBus",
    "Subscription",
    # Logging
    "setup_logging",
    "get_component_logger",
    "set_debug",
    "log_bootstrap_result",
    "log_notification",
    # Scheduling
    "ScheduledLoop",
]
