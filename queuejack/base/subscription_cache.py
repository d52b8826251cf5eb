"""
Subscription memo cache.

Remembers which (topic, queue) pairs have already been reconciled so that
repeated dequeue calls skip the SNS round trips. One cache belongs to one
:class:`~queuejack.message_queue.MessageQueue`; it lives as long as that
facade and is cleared when the facade is closed.

Concurrent first use of the same pair is not serialized: two callers may
both miss the cache and both reconcile. The subscription listing done by the
reconciler makes a duplicate subscription unlikely, and the second
``mark`` is a no-op.
"""

from __future__ import annotations

import threading


class SubscriptionCache:
    """Thread-safe set of reconciled (topic, queue) pairs."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], bool] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _make_key(topic_name: str, queue_name: str) -> tuple[str, str]:
        return (topic_name, queue_name)

    def is_subscribed(self, topic_name: str, queue_name: str) -> bool:
        with self._lock:
            return self._entries.get(self._make_key(topic_name, queue_name), False)

    def mark(self, topic_name: str, queue_name: str) -> None:
        """Record a successful reconciliation."""
        with self._lock:
            self._entries[self._make_key(topic_name, queue_name)] = True

    def evict(self, topic_name: str | None = None, queue_name: str | None = None) -> int:
        """Drop entries matching *topic_name* and/or *queue_name*.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            doomed = [
                key
                for key in self._entries
                if (topic_name is None or key[0] == topic_name)
                and (queue_name is None or key[1] == queue_name)
            ]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        """Flush all entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
