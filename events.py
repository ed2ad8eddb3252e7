"""
events.py — In-process change feed for list views.

A listener subscribes to a topic with a loader (returns the latest full
list) and a callback. It gets the current list right away and again after
every notify() on that topic. subscribe() returns an unsubscribe function.
"""

import logging
import threading
from collections import defaultdict

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Topic → listeners registry. Thread-safe."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = defaultdict(dict)
        self._next_token = 0

    def subscribe(self, topic, loader, on_change):
        """
        Register on_change for topic and deliver the current snapshot.

        Args:
            topic: Hashable topic key, e.g. ('inventory', user_id)
            loader: Zero-argument callable returning the latest full list
            on_change: Callable receiving that list

        Returns:
            unsubscribe() callable. Calling it more than once is harmless.
        """
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[topic][token] = (loader, on_change)

        self._deliver(topic, loader, on_change)

        def unsubscribe():
            with self._lock:
                listeners = self._listeners.get(topic)
                if listeners is not None:
                    listeners.pop(token, None)
                    if not listeners:
                        del self._listeners[topic]

        return unsubscribe

    def notify(self, topic):
        """Push the latest list to every listener of topic."""
        with self._lock:
            listeners = list(self._listeners.get(topic, {}).values())
        for loader, on_change in listeners:
            self._deliver(topic, loader, on_change)

    def listener_count(self, topic) -> int:
        with self._lock:
            return len(self._listeners.get(topic, {}))

    def _deliver(self, topic, loader, on_change):
        try:
            on_change(loader())
        except Exception:
            logger.exception("Change listener for %s failed", topic)


feed = ChangeFeed()
