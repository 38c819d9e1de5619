"""A player that streams packets as an FLV file over an HTTP response."""

import logging
import threading
import time
from collections import deque

from . import pio
from .chunk import TAG_AUDIO, TAG_SCRIPTDATAAMF0, TAG_VIDEO
from .media import StreamInfo
from .uid import new_id

log = logging.getLogger(__name__)

HEADER_LEN = 11
MAX_QUEUE_NUM = 1024
DEFAULT_TIMEOUT = 10.0
FLV_HEADER = bytes([0x46, 0x4C, 0x56, 0x01, 0x05, 0x00, 0x00, 0x00, 0x09])

_U32 = 0xFFFFFFFF


class FLVWriter:
    """Queues packets and writes them as FLV tags to ``out``.

    ``out`` needs ``write(data)``. ``metadata_transform``, when given, is
    applied to the body of every metadata packet before it is written.
    """

    def __init__(self, app, title, url, out, timeout=DEFAULT_TIMEOUT,
                 metadata_transform=None, start=True):
        self.uid = new_id()
        self.app = app
        self.title = title
        self.url = url
        self.out = out
        self.timeout = timeout
        self.base_timestamp = 0
        self.last_video_timestamp = 0
        self.last_audio_timestamp = 0
        self.closed = False
        self._pre_time = time.monotonic()
        self._metadata_transform = metadata_transform
        self._queue = deque()
        self._cond = threading.Condition()
        self._done = threading.Event()

        try:
            out.write(FLV_HEADER)
            out.write(pio.pack_i32be(0))
        except OSError as exc:
            log.error("error on response writer: %s", exc)
            self.closed = True

        if start:
            threading.Thread(target=self._run_sender, daemon=True).start()

    def __len__(self):
        with self._cond:
            return len(self._queue)

    def write(self, packet):
        """Queue a packet; thins the queue instead when it is nearly full."""
        with self._cond:
            if self.closed:
                raise ConnectionError("flvwrite source closed")
            if len(self._queue) >= MAX_QUEUE_NUM - 24:
                self._drop_locked()
            else:
                self._queue.append(packet)
                self._cond.notify()

    def drop_packets(self):
        """Discard queued video, keeping audio, key frames and headers."""
        with self._cond:
            self._drop_locked()

    def _drop_locked(self):
        log.warning("[%s] packet queue max!!!", self.info())
        queue = self._queue
        for _ in range(MAX_QUEUE_NUM - 84):
            if not queue:
                break
            packet = queue.popleft()
            if packet.is_video:
                header = packet.header
                if header is not None and (
                    getattr(header, "is_seq", False)
                    or getattr(header, "is_key_frame", False)
                ):
                    queue.append(packet)
                if len(queue) > MAX_QUEUE_NUM - 10:
                    queue.popleft()
                if queue:
                    queue.popleft()
            if packet.is_audio:
                queue.append(packet)
        log.debug("packet queue len: %d", len(queue))

    def _next_packet(self):
        with self._cond:
            while not self._queue and not self.closed:
                self._cond.wait()
            if self._queue:
                return self._queue.popleft()
            return None

    def _tag(self, packet):
        data = bytes(packet.data)
        if packet.is_video:
            type_id = TAG_VIDEO
        elif packet.is_metadata:
            type_id = TAG_SCRIPTDATAAMF0
            if self._metadata_transform is not None:
                data = bytes(self._metadata_transform(data))
        else:
            type_id = TAG_AUDIO

        timestamp = (packet.timestamp + self.base_timestamp) & _U32
        if type_id == TAG_VIDEO:
            self.last_video_timestamp = timestamp
        elif type_id == TAG_AUDIO:
            self.last_audio_timestamp = timestamp

        header = (
            pio.pack_u8(type_id)
            + pio.pack_i24be(len(data))
            + pio.pack_i24be(timestamp & 0xFFFFFF)
            + pio.pack_u8(timestamp >> 24)
            + bytes(3)
        )
        return header, data

    def send_packets(self):
        """Write queued packets until the writer is closed and drained."""
        while True:
            packet = self._next_packet()
            if packet is None:
                return
            self._pre_time = time.monotonic()
            header, data = self._tag(packet)
            try:
                self.out.write(header)
                self.out.write(data)
                self.out.write(pio.pack_i32be(len(data) + HEADER_LEN))
            except Exception:
                with self._cond:
                    self.closed = True
                    self._cond.notify_all()
                raise

    def _run_sender(self):
        try:
            self.send_packets()
        except Exception as exc:
            log.debug("send packets error: %s", exc)

    def wait(self, timeout=None):
        """Block until the writer is closed; False if ``timeout`` ran out."""
        return self._done.wait(timeout)

    def alive(self):
        """True while the last packet went out within the timeout."""
        return time.monotonic() - self._pre_time < self.timeout

    def close(self, err):
        """Stop accepting packets and wake anyone waiting."""
        log.debug("http flv closed: %s", err)
        with self._cond:
            if not self.closed:
                self._done.set()
            self.closed = True
            self._cond.notify_all()

    def info(self):
        """Describe this player."""
        return StreamInfo(
            key=f"{self.app}/{self.title}",
            url=self.url,
            uid=self.uid,
            inter=True,
        )