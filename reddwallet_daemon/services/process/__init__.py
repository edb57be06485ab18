"""
Daemon Process

Responsibilities:
- Stop a daemon left over from an earlier session
- Spawn the daemon and persist its PID
- Relay daemon output, react to its exit
- Terminate the daemon on shutdown
"""

from .pidfile import PidRecord
from .supervisor import ProcessSupervisor

__all__ = ["PidRecord", "ProcessSupervisor"]
