"""Buffered reader/writer with sticky errors over a byte stream."""


class ReadWriter:
    """Buffers reads and writes over ``stream``.

    ``stream`` needs ``read(n)`` returning up to ``n`` bytes (empty at end)
    and ``write(data)``. Once a read or write fails, the error is kept in
    ``read_error`` or ``write_error`` and raised again on later calls.
    """

    def __init__(self, stream, buffer_size=4096):
        self._stream = stream
        self._size = max(buffer_size, 16)
        self._rbuf = bytearray()
        self._wbuf = bytearray()
        self.read_error = None
        self.write_error = None

    def _fill(self, need):
        while len(self._rbuf) < need:
            chunk = self._stream.read(max(self._size, need - len(self._rbuf)))
            if not chunk:
                return False
            self._rbuf += chunk
        return True

    def _take(self, n):
        data = bytes(self._rbuf[:n])
        del self._rbuf[:n]
        return data

    def read(self, size):
        """Return exactly ``size`` bytes or raise EOFError."""
        if self.read_error is not None:
            raise self.read_error
        try:
            complete = self._fill(size)
        except OSError as exc:
            self.read_error = exc
            raise
        if not complete:
            partial = bool(self._rbuf)
            self._rbuf.clear()
            exc = EOFError("unexpected EOF" if partial else "EOF")
            self.read_error = exc
            raise exc
        return self._take(size)

    def read_uint_be(self, n):
        """Read an ``n``-byte big-endian unsigned integer."""
        return int.from_bytes(self.read(n), "big")

    def read_uint_le(self, n):
        """Read an ``n``-byte little-endian unsigned integer."""
        return int.from_bytes(self.read(n), "little")

    def peek(self, n):
        """Return the next ``n`` bytes without consuming them."""
        if not self._fill(n):
            raise EOFError("EOF")
        return bytes(self._rbuf[:n])

    def discard(self, n):
        """Skip ``n`` bytes; raises EOFError if fewer are available."""
        complete = self._fill(n)
        del self._rbuf[:n]
        if not complete:
            raise EOFError("EOF")

    def _drain(self):
        data = bytes(self._wbuf)
        self._wbuf.clear()
        try:
            while data:
                written = self._stream.write(data)
                data = data[written:] if written is not None else b""
        except OSError as exc:
            self.write_error = exc
            raise

    def write(self, data):
        """Buffer ``data`` and return its length."""
        if self.write_error is not None:
            raise self.write_error
        self._wbuf += data
        if len(self._wbuf) >= self._size:
            self._drain()
        return len(data)

    def write_uint_be(self, value, n):
        """Write the low ``n`` bytes of ``value`` big-endian."""
        self.write((value & ((1 << (8 * n)) - 1)).to_bytes(n, "big"))

    def write_uint_le(self, value, n):
        """Write the low ``n`` bytes of ``value`` little-endian."""
        self.write((value & ((1 << (8 * n)) - 1)).to_bytes(n, "little"))

    def flush(self):
        """Send buffered output to the stream."""
        if self.write_error is not None:
            raise self.write_error
        if not self._wbuf:
            return
        self._drain()
        flush = getattr(self._stream, "flush", None)
        if flush is not None:
            flush()