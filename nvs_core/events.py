"""Synchronous event bus that carries install and activation notifications.

Front-ends subscribe to render progress; the core never depends on anyone
listening.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict

__all__ = ["Event", "EventHandler", "EventBus", "STANDARD_EVENTS"]

STANDARD_EVENTS = (
    "resolved",
    "download_started",
    "download_progress",
    "installed",
    "activated",
    "deactivated",
    "uninstalled",
)


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict[str, Any]


EventHandler = Callable[[Event], None]


@dataclass(frozen=True)
class _Subscription:
    priority: int
    order: int
    handler: EventHandler


class EventBus:
    """Deliver events to handlers by descending priority, then subscription order."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, list[_Subscription]] = defaultdict(list)
        self._sequence = 0

    def on(self, event_name: str, handler: EventHandler, priority: int = 0) -> None:
        self._sequence += 1
        self._handlers[event_name].append(
            _Subscription(priority=priority, order=self._sequence, handler=handler)
        )

    def off(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name] = [
            sub for sub in self._handlers[event_name] if sub.handler is not handler
        ]

    def emit(self, event_name: str, **payload: Any) -> None:
        event = Event(event_name, dict(payload))
        ordered = sorted(self._handlers[event_name], key=lambda sub: (-sub.priority, sub.order))
        for sub in ordered:
            sub.handler(event)
