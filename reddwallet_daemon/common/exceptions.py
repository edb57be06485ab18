"""
Custom Exception Classes for the Daemon Supervisor

Hierarchical exception structure for the bootstrap pipeline. Every
pipeline stage raises a DaemonError subclass; the bootstrap controller
converts it into the terminal {code, message} result.
"""

from .result import ResultCode


class DaemonError(Exception):
    """Base exception for all daemon supervisor errors"""

    code: int = ResultCode.DAEMON_ERROR

    def __init__(self, message: str, code: int | None = None, recoverable: bool = False):
        self.message = message
        self.recoverable = recoverable
        if code is not None:
            self.code = code
        super().__init__(message)


class PlatformUnsupportedError(DaemonError):
    """No daemon binary is shipped for this operating system"""

    code = ResultCode.PLATFORM_UNSUPPORTED

    def __init__(self, platform_id: str):
        self.platform_id = platform_id
        super().__init__("This operating system does not support running the Reddcoin daemon.")


class BinaryMissingError(DaemonError):
    """The resolved daemon binary does not exist on disk"""

    def __init__(self, platform_label: str, path: str | None = None):
        self.platform_label = platform_label
        self.path = path
        super().__init__(f"Cannot find the daemon for this operating system: {platform_label}")


class ConfigInitError(DaemonError):
    """Data directory or daemon config file could not be created"""

    code = ResultCode.CONFIG_ERROR


class ConfigParseError(DaemonError):
    """Daemon config file could not be read"""

    code = ResultCode.CONFIG_ERROR

    def __init__(self, message: str = "An error occurred whilst trying to parse the daemon configuration file."):
        super().__init__(message)


class SpawnError(DaemonError):
    """The daemon process could not be launched"""

    def __init__(
        self,
        message: str = "We cannot start the daemon, please check no other wallets are running.",
        cause: str | None = None,
    ):
        self.cause = cause
        super().__init__(message)


class DaemonRuntimeError(DaemonError):
    """The running daemon reported a failure"""

    def __init__(self, message: str, fatal: bool = True):
        self.fatal = fatal
        super().__init__(message, recoverable=not fatal)


class RpcError(Exception):
    """
    Structured error from the daemon RPC interface.

    code is the JSON-RPC error code (int), a transport code such as
    "ECONNREFUSED", or None when the reply carried nothing recognisable.
    """

    def __init__(self, code: int | str | None, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"RPC Error [{code}]: {message}")
