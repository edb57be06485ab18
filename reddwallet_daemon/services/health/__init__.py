"""
Daemon Health

Responsibilities:
- Probe the daemon RPC every second until it answers
- Emit a block heartbeat for the rest of the session once ready
"""

from .heartbeat import BlockHeartbeat
from .poller import HealthPoller, PollState

__all__ = ["BlockHeartbeat", "HealthPoller", "PollState"]
