"""In-process change feed for live collection updates."""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class ChangeFeed:
    """Observer registry keyed by topic."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for a topic.

        Args:
            topic: Topic name
            callback: Called with the payload of every publish

        Returns:
            A callable that removes the registration
        """
        with self._lock:
            self._subscribers[topic].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(topic, None)

        return unsubscribe

    def has_subscribers(self, topic: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(topic))

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver a payload to every subscriber of a topic.

        A failing subscriber is logged and skipped.

        Returns:
            Number of subscribers that received the payload
        """
        with self._lock:
            callbacks = list(self._subscribers.get(topic, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber for {topic} failed: {str(e)}", exc_info=True)

        return delivered
