"""
Daemon Notifications

Responsibilities:
- Map BLOCK/ALERT/WALLET notify hook output to events
- Turn stderr output into bootstrap failures
"""

from .relay import NotificationRelay

__all__ = ["NotificationRelay"]
