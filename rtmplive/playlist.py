"""HLS segment items and the rolling playlist built from them."""

import threading
from collections import deque
from dataclasses import dataclass

MAX_TS_CACHE_NUM = 3


class NoKeyError(KeyError):
    """Raised when a segment is not in the cache."""

    def __init__(self, key):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return f"No key for cache: {self.key}"


@dataclass(frozen=True)
class TSItem:
    """One MPEG-TS segment; ``duration`` is in milliseconds."""

    name: str
    seq_num: int
    duration: int
    data: bytes

    def __post_init__(self):
        object.__setattr__(self, "data", bytes(self.data))


class TSCache:
    """Keeps the latest segments of one stream and renders an M3U8 playlist."""

    def __init__(self, key, capacity=MAX_TS_CACHE_NUM):
        self.key = key
        self._capacity = capacity
        self._order = deque()
        self._items = {}
        self._lock = threading.Lock()

    def set_item(self, key, item):
        """Store a segment, evicting the oldest one when full."""
        with self._lock:
            if len(self._order) == self._capacity:
                self._items.pop(self._order.popleft(), None)
            self._items[key] = item
            self._order.append(key)

    def get_item(self, key):
        """Return the segment stored under ``key``."""
        with self._lock:
            try:
                return self._items[key]
            except KeyError:
                raise NoKeyError(key) from None

    def m3u8_playlist(self):
        """Render the live playlist as bytes."""
        with self._lock:
            entries = [self._items[k] for k in self._order if k in self._items]
        max_duration = max([0, *(e.duration for e in entries)])
        seq = entries[0].seq_num if entries else 0
        body = "".join(
            f"#EXTINF:{e.duration / 1000:.3f},\n{e.name}\n" for e in entries
        )
        header = (
            "#EXTM3U\n#EXT-X-VERSION:3\n#EXT-X-ALLOW-CACHE:NO\n"
            f"#EXT-X-TARGETDURATION:{max_duration // 1000 + 1}\n"
            f"#EXT-X-MEDIA-SEQUENCE:{seq}\n\n"
        )
        return (header + body).encode()