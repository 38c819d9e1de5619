"""RTMP chunk streams: splitting messages into chunks and reassembling them."""

from dataclasses import dataclass

TAG_AUDIO = 8
TAG_VIDEO = 9
TAG_SCRIPTDATAAMF3 = 15
TAG_SCRIPTDATAAMF0 = 18

_MAX24 = 0xFFFFFF
_U32 = 0xFFFFFFFF


@dataclass
class ChunkStream:
    """One RTMP message together with the state needed to chunk it.

    ``fmt`` is the chunk header format (0..3) of the last chunk written or
    read; ``tmp_format`` is the format of the chunk about to be read.
    """

    fmt: int = 0
    csid: int = 0
    timestamp: int = 0
    length: int = 0
    type_id: int = 0
    stream_id: int = 0
    data: bytes | bytearray | memoryview = b""
    time_delta: int = 0
    exted: bool = False
    index: int = 0
    remain: int = 0
    got: bool = False
    tmp_format: int = 0

    def is_full(self):
        """True once every byte of the message has been read."""
        return self.got

    def _new(self, pool):
        self.got = False
        self.index = 0
        self.remain = self.length
        self.data = pool.get(self.length)

    def write_header(self, rw):
        """Write the basic, message and extended-timestamp headers."""
        head = (self.fmt << 6) & 0xFF
        if self.csid < 64:
            rw.write_uint_be(head | self.csid, 1)
        elif self.csid - 64 < 256:
            rw.write_uint_be(head, 1)
            rw.write_uint_le(self.csid - 64, 1)
        elif self.csid - 64 < 65536:
            rw.write_uint_be(head | 1, 1)
            rw.write_uint_le(self.csid - 64, 2)
        else:
            raise ValueError(f"csid={self.csid} out of range")

        ts = self.timestamp
        if self.fmt != 3:
            if ts > _MAX24:
                ts = _MAX24
            rw.write_uint_be(ts, 3)
            if self.fmt != 2:
                if self.length > _MAX24:
                    raise ValueError(f"length={self.length}")
                rw.write_uint_be(self.length, 3)
                rw.write_uint_be(self.type_id, 1)
                if self.fmt != 1:
                    rw.write_uint_le(self.stream_id, 4)
        if ts >= _MAX24:
            rw.write_uint_be(self.timestamp, 4)

    def write_chunk(self, rw, chunk_size):
        """Split the message into chunks of ``chunk_size`` and write them."""
        if self.type_id == TAG_AUDIO:
            self.csid = 4
        elif self.type_id in (TAG_VIDEO, TAG_SCRIPTDATAAMF0, TAG_SCRIPTDATAAMF3):
            self.csid = 6

        total = 0
        size = len(self.data)
        for i in range(self.length // chunk_size + 1):
            if total == self.length:
                break
            self.fmt = 0 if i == 0 else 3
            self.write_header(rw)
            start = i * chunk_size
            inc = min(chunk_size, max(size - start, 0))
            total += inc
            rw.write(bytes(self.data[start:start + inc]))

    def read_chunk(self, rw, chunk_size, pool):
        """Read one chunk body (the basic header byte is already consumed)."""
        if self.remain != 0 and self.tmp_format != 3:
            raise ValueError(f"invalid remain = {self.remain}")
        if self.csid == 0:
            self.csid = rw.read_uint_le(1) + 64
        elif self.csid == 1:
            self.csid = rw.read_uint_le(2) + 64

        fmt = self.tmp_format
        if fmt == 0:
            self.fmt = fmt
            self.timestamp = rw.read_uint_be(3)
            self.length = rw.read_uint_be(3)
            self.type_id = rw.read_uint_be(1)
            self.stream_id = rw.read_uint_le(4)
            self.exted = self.timestamp == _MAX24
            if self.exted:
                self.timestamp = rw.read_uint_be(4)
            self._new(pool)
        elif fmt in (1, 2):
            self.fmt = fmt
            delta = rw.read_uint_be(3)
            if fmt == 1:
                self.length = rw.read_uint_be(3)
                self.type_id = rw.read_uint_be(1)
            self.exted = delta == _MAX24
            if self.exted:
                delta = rw.read_uint_be(4)
            self.time_delta = delta
            self.timestamp = (self.timestamp + delta) & _U32
            self._new(pool)
        elif fmt == 3:
            if self.remain == 0:
                if self.fmt == 0:
                    if self.exted:
                        self.timestamp = rw.read_uint_be(4)
                elif self.fmt in (1, 2):
                    delta = rw.read_uint_be(4) if self.exted else self.time_delta
                    self.timestamp = (self.timestamp + delta) & _U32
                self._new(pool)
            elif self.exted:
                if int.from_bytes(rw.peek(4), "big") == self.timestamp:
                    rw.discard(4)
        else:
            raise ValueError(f"invalid format={fmt}")

        size = min(self.remain, chunk_size)
        self.data[self.index:self.index + size] = rw.read(size)
        self.index += size
        self.remain -= size
        if self.remain == 0:
            self.got = True