"""
Bootstrap Result

The single terminal value of a bootstrap attempt and the one-shot channel
that carries it to the rest of the application.
"""

import asyncio
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .exceptions import DaemonError


class ResultCode(IntEnum):
    """Stable numeric codes shown to the user"""
    READY = 0
    PLATFORM_UNSUPPORTED = 1
    DAEMON_ERROR = 2  # binary missing, spawn failure, daemon runtime error
    CONFIG_ERROR = 4


@dataclass(frozen=True)
class BootstrapResult:
    """Tagged success/failure with a code and a user-facing message"""
    success: bool
    code: int
    message: str

    @classmethod
    def ready(cls, message: str = "Daemon Ready") -> "BootstrapResult":
        return cls(True, ResultCode.READY, message)

    @classmethod
    def failure(cls, code: int, message: str) -> "BootstrapResult":
        return cls(False, int(code), message)

    @classmethod
    def from_error(cls, error: "DaemonError") -> "BootstrapResult":
        return cls.failure(error.code, error.message)

    def to_dict(self) -> dict:
        return {"result": self.success, "code": self.code, "message": self.message}


class ResultChannel:
    """
    One-shot channel for the bootstrap result.

    The first call to resolve() wins; every later call is ignored and
    reported back as False, so stages racing to finish the pipeline (a
    stderr line arriving while the probe succeeds, say) cannot overwrite
    the delivered result.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._result: BootstrapResult | None = None
        self._ignored = 0

    def resolve(self, result: BootstrapResult) -> bool:
        """Complete the channel. Returns False if it was already complete."""
        if self._result is not None:
            self._ignored += 1
            return False

        self._result = result
        self._event.set()
        return True

    async def wait(self) -> BootstrapResult:
        """Wait for the result"""
        await self._event.wait()
        return self._result

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> BootstrapResult | None:
        return self._result

    @property
    def ignored_count(self) -> int:
        """Number of resolve() calls that arrived after completion"""
        return self._ignored
