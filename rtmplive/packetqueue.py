"""A small thread-safe bounded packet stack."""

import threading


class PacketQueue:
    """Holds packets; ``pop`` returns the most recently pushed one.

    If ``max_size`` is greater than zero the queue never holds more than
    that many items: pushing onto a full queue first drops the newest item.
    """

    def __init__(self, max_size=0):
        self._max_size = max_size
        self._items = []
        self._lock = threading.Lock()

    def push(self, item):
        """Add an item."""
        with self._lock:
            if self._max_size > 0 and len(self._items) >= self._max_size:
                self._items.pop()
            self._items.append(item)

    def pop(self):
        """Remove and return the newest item, or None when empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.pop()

    def __len__(self):
        with self._lock:
            return len(self._items)

    def all(self):
        """Remove and return every item, oldest first."""
        with self._lock:
            items, self._items = self._items, []
            return items