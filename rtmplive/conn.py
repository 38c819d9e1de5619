"""An RTMP connection: chunk reassembly, control messages and acks."""

from dataclasses import replace

from . import pio
from .chunk import ChunkStream
from .pool import Pool
from .readwriter import ReadWriter

ID_SET_CHUNK_SIZE = 1
ID_ABORT_MESSAGE = 2
ID_ACK = 3
ID_USER_CONTROL_MESSAGES = 4
ID_WINDOW_ACK_SIZE = 5
ID_SET_PEER_BANDWIDTH = 6

STREAM_BEGIN = 0
STREAM_EOF = 1
STREAM_DRY = 2
SET_BUFFER_LEN = 3
STREAM_IS_RECORDED = 4
PING_REQUEST = 6
PING_RESPONSE = 7

_U32 = 0xFFFFFFFF


def _control_msg(type_id, size, value):
    data = bytearray(size)
    data[0:4] = pio.pack_u32be(value)
    return ChunkStream(fmt=0, csid=2, type_id=type_id, stream_id=0,
                       length=size, data=data)


class Conn:
    """Reads and writes RTMP messages over a byte stream.

    ``stream`` needs ``read(n)`` and ``write(data)``; ``sock``, when given,
    is the underlying socket, used for timeouts and closing.
    """

    def __init__(self, stream, buffer_size=4 * 1024, sock=None):
        self.stream = stream
        self.sock = sock
        self.rw = ReadWriter(stream, buffer_size)
        self.pool = Pool()
        self.chunk_size = 128
        self.remote_chunk_size = 128
        self.window_ack_size = 2500000
        self.remote_window_ack_size = 2500000
        self.received = 0
        self.ack_received = 0
        self.chunks = {}

    def read(self):
        """Read chunks until a whole message is assembled and return it."""
        while True:
            head = self.rw.read_uint_be(1)
            csid = head & 0x3F
            cs = self.chunks.setdefault(csid, ChunkStream())
            cs.tmp_format = head >> 6
            cs.csid = csid
            cs.read_chunk(self.rw, self.remote_chunk_size, self.pool)
            if cs.is_full():
                message = replace(cs, data=bytes(cs.data))
                break
        self._handle_control_msg(message)
        self._ack(message.length)
        return message

    def write(self, chunk):
        """Write a message, honouring our own chunk size changes."""
        if chunk.type_id == ID_SET_CHUNK_SIZE:
            self.chunk_size = pio.u32be(chunk.data)
        chunk.write_chunk(self.rw, self.chunk_size)

    def flush(self):
        """Send buffered output."""
        self.rw.flush()

    def close(self):
        """Close the socket or stream."""
        target = self.sock if self.sock is not None else self.stream
        close = getattr(target, "close", None)
        if close is not None:
            close()

    def new_ack(self, size):
        """Build an acknowledgement message."""
        return _control_msg(ID_ACK, 4, size)

    def new_set_chunk_size(self, size):
        """Build a set-chunk-size message."""
        return _control_msg(ID_SET_CHUNK_SIZE, 4, size)

    def new_window_ack_size(self, size):
        """Build a window-acknowledgement-size message."""
        return _control_msg(ID_WINDOW_ACK_SIZE, 4, size)

    def new_set_peer_bandwidth(self, size):
        """Build a set-peer-bandwidth message with the dynamic limit type."""
        msg = _control_msg(ID_SET_PEER_BANDWIDTH, 5, size)
        msg.data[4] = 2
        return msg

    def _handle_control_msg(self, chunk):
        if chunk.type_id == ID_SET_CHUNK_SIZE:
            self.remote_chunk_size = pio.u32be(chunk.data)
        elif chunk.type_id == ID_WINDOW_ACK_SIZE:
            self.remote_window_ack_size = pio.u32be(chunk.data)

    def _ack(self, size):
        self.received = (self.received + size) & _U32
        self.ack_received = (self.ack_received + size) & _U32
        if self.received >= 0xF0000000:
            self.received = 0
        if self.ack_received >= self.remote_window_ack_size:
            self.new_ack(self.ack_received).write_chunk(self.rw, self.chunk_size)
            self.ack_received = 0

    def _user_control_msg(self, event_type, value):
        data = pio.pack_u16be(event_type) + pio.pack_u32be(value)
        return ChunkStream(fmt=0, csid=2, type_id=ID_USER_CONTROL_MESSAGES,
                           stream_id=1, length=len(data), data=data)

    def set_begin(self):
        """Send a stream-begin user control event."""
        self.write(self._user_control_msg(STREAM_BEGIN, 1))

    def set_recorded(self):
        """Send a stream-is-recorded user control event."""
        self.write(self._user_control_msg(STREAM_IS_RECORDED, 1))