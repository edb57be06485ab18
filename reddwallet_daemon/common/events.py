"""
Daemon Event Bus

Publish/subscribe channel between the supervisor and the rest of the
application. Replaces broadcasting on a global scope: the bus is created
once per session and handed to each component that emits.

Subscriptions are explicit handles, so a subscriber can drop out
(cancel(), or leave a `with` block) without the bus holding on to it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .logging_setup import get_component_logger


class DaemonEvent(str, Enum):
    """Application-wide daemon events"""
    BOOTSTRAPPED = "daemon.bootstrapped"
    BLOCK = "daemon.notifications.block"
    ALERT = "daemon.notifications.alert"
    WALLET = "daemon.notifications.wallet"
    EXITED = "daemon.exited"


@dataclass
class Event:
    """An emitted event with optional payload"""
    name: DaemonEvent
    payload: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[Event], None]


class Subscription:
    """Handle returned by EventBus.subscribe(); cancel() to stop receiving events"""

    def __init__(self, bus: "EventBus", event: DaemonEvent | None, handler: EventHandler):
        self._bus = bus
        self.event = event
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()
        return False


class EventBus:
    """
    Synchronous event bus.

    Handlers run in emit order on the caller's stack. A failing handler
    is logged and does not stop delivery to the others.
    """

    def __init__(self, logger: logging.LoggerAdapter | None = None, max_history: int = 100):
        self.logger = logger or get_component_logger("events")
        self._subscriptions: list[Subscription] = []
        self._history: list[Event] = []
        self._max_history = max_history

    def subscribe(self, event: DaemonEvent, handler: EventHandler) -> Subscription:
        """
        Subscribe to one event type.

        Args:
            event: Event to receive
            handler: Callback function(event) -> None

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, event, handler)
        self._subscriptions.append(subscription)
        self.logger.debug(f"Subscribed handler to {event.value}")
        return subscription

    def subscribe_all(self, handler: EventHandler) -> Subscription:
        """Subscribe to every event."""
        subscription = Subscription(self, None, handler)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def emit(self, event: DaemonEvent, payload: Any = None) -> Event:
        """
        Emit an event to all subscribers.

        Args:
            event: Event type
            payload: Optional payload (BootstrapResult for BOOTSTRAPPED)

        Returns:
            The emitted event
        """
        emitted = Event(name=event, payload=payload)

        self._history.append(emitted)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        self.logger.debug(f"Emitting event: {event.value}")

        # Copy: handlers may cancel their own subscription
        for subscription in list(self._subscriptions):
            if subscription.event is not None and subscription.event != event:
                continue
            try:
                subscription.handler(emitted)
            except Exception as e:
                self.logger.error(f"Event handler for {event.value} failed: {e}", exc_info=True)

        return emitted

    def get_history(self, event: DaemonEvent | None = None) -> list[Event]:
        """Recent events, optionally filtered by type"""
        if event is None:
            return list(self._history)
        return [e for e in self._history if e.name == event]

    @property
    def handler_count(self) -> int:
        return len(self._subscriptions)
