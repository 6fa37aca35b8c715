"""
Simple pub/sub event bus for sync notifications.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)

Event = dict[str, Any]
Handler = Callable[[Event], None]


class EventBus:
    """In-process event bus with topic routing."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> None:
        """Subscribe a handler to a topic ("*" for all)."""
        self._subscribers[topic].append(handler)

    def publish(self, topic: str, event: Optional[Event] = None) -> None:
        """Publish an event to a topic. Failing handlers are logged and skipped."""
        event = {"topic": topic, **(event or {})}
        handlers = [*self._subscribers.get(topic, []), *self._subscribers.get("*", [])]
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                log.error(f"Event handler failed for topic '{topic}': {e}")
