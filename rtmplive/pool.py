"""A bump allocator handing out slices of a shared byte buffer."""

MAX_POOL_SIZE = 500 * 1024


class Pool:
    """Hands out writable views carved from a large buffer.

    When the current buffer cannot hold a request, a fresh one is started;
    views handed out earlier keep referring to the old buffer.
    """

    def __init__(self):
        self._buf = bytearray(MAX_POOL_SIZE)
        self._pos = 0

    def get(self, size):
        """Return a writable memoryview of ``size`` bytes."""
        if size < 0 or size > MAX_POOL_SIZE:
            raise ValueError(f"size {size} outside 0..{MAX_POOL_SIZE}")
        if MAX_POOL_SIZE - self._pos < size:
            self._pos = 0
            self._buf = bytearray(MAX_POOL_SIZE)
        view = memoryview(self._buf)[self._pos:self._pos + size]
        self._pos += size
        return view