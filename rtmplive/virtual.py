"""Virtual players and publishers bound to an RTMP chunk connection.

A connection is any object offering ``get_info()`` returning
``(app, name, url)``, ``read()`` returning a :class:`ChunkStream`,
``write(chunk)``, ``close(err)`` and, optionally, ``flush()``.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from urllib.parse import urlparse

from .chunk import (
    TAG_AUDIO,
    TAG_SCRIPTDATAAMF0,
    TAG_SCRIPTDATAAMF3,
    TAG_VIDEO,
    ChunkStream,
)
from .media import Packet, StreamInfo
from .uid import new_id

log = logging.getLogger(__name__)

MAX_QUEUE_NUM = 1024
SAVE_STATICS_INTERVAL = 5000
DEFAULT_TIMEOUT = 10.0

_MEDIA_TAGS = (TAG_AUDIO, TAG_VIDEO, TAG_SCRIPTDATAAMF0, TAG_SCRIPTDATAAMF3)


def _now_ms():
    return int(time.time() * 1000)


def _key_from_url(url):
    return urlparse(url).path.lstrip("/")


@dataclass
class BandwidthStats:
    """Byte counters and speeds (kbit/s) of one reader or writer."""

    stream_id: int = 0
    video_bytes: int = 0
    last_video_bytes: int = 0
    video_speed: int = 0
    audio_bytes: int = 0
    last_audio_bytes: int = 0
    audio_speed: int = 0
    last_timestamp: int = 0

    def record(self, stream_id, length, is_video, now_ms=None):
        """Count ``length`` bytes and refresh speeds every few seconds."""
        if now_ms is None:
            now_ms = _now_ms()
        self.stream_id = stream_id
        if is_video:
            self.video_bytes += length
        else:
            self.audio_bytes += length

        if self.last_timestamp == 0:
            self.last_timestamp = now_ms
        elif now_ms - self.last_timestamp >= SAVE_STATICS_INTERVAL:
            seconds = (now_ms - self.last_timestamp) // 1000
            self.video_speed = (
                (self.video_bytes - self.last_video_bytes) * 8 // seconds // 1000
            )
            self.audio_speed = (
                (self.audio_bytes - self.last_audio_bytes) * 8 // seconds // 1000
            )
            self.last_video_bytes = self.video_bytes
            self.last_audio_bytes = self.audio_bytes
            self.last_timestamp = now_ms


class _Activity:
    """Liveness and timestamp bookkeeping shared by readers and writers."""

    def __init__(self, timeout):
        self.timeout = timeout
        self.base_timestamp = 0
        self.last_video_timestamp = 0
        self.last_audio_timestamp = 0
        self._pre_time = time.monotonic()

    def _touch(self):
        self._pre_time = time.monotonic()

    def _rec_timestamp(self, timestamp, type_id):
        if type_id == TAG_VIDEO:
            self.last_video_timestamp = timestamp
        elif type_id == TAG_AUDIO:
            self.last_audio_timestamp = timestamp

    def _is_alive(self):
        return time.monotonic() - self._pre_time < self.timeout


class VirWriter(_Activity):
    """Queues packets for a player and sends them as RTMP messages."""

    def __init__(self, conn, timeout=DEFAULT_TIMEOUT, start=True):
        super().__init__(timeout)
        self.uid = new_id()
        self.conn = conn
        self.stats = BandwidthStats()
        self.closed = False
        self._queue = deque()
        self._cond = threading.Condition()
        if start:
            threading.Thread(target=self.check, daemon=True).start()
            threading.Thread(target=self._run_sender, daemon=True).start()

    def __len__(self):
        with self._cond:
            return len(self._queue)

    def alive(self):
        """True while the last packet was sent within the timeout."""
        return self._is_alive()

    def write(self, packet):
        """Queue a packet; thins the queue instead when it is nearly full."""
        with self._cond:
            if self.closed:
                raise ConnectionError("VirWriter closed")
            if len(self._queue) >= MAX_QUEUE_NUM - 24:
                self._drop_locked()
            else:
                self._queue.append(packet)
                self._cond.notify()

    def drop_packets(self):
        """Discard queued packets, keeping audio, key frames and headers."""
        with self._cond:
            self._drop_locked()

    def _drop_locked(self):
        log.warning("[%s] packet queue max!!!", self.uid)
        queue = self._queue
        for _ in range(MAX_QUEUE_NUM - 84):
            if not queue:
                break
            packet = queue.popleft()
            if packet.is_audio:
                if len(queue) > MAX_QUEUE_NUM - 2:
                    queue.popleft()
                else:
                    queue.append(packet)
            if packet.is_video:
                header = packet.header
                if header is not None and (
                    getattr(header, "is_seq", False)
                    or getattr(header, "is_key_frame", False)
                ):
                    queue.append(packet)
                if len(queue) > MAX_QUEUE_NUM - 10 and queue:
                    queue.popleft()
        log.debug("packet queue len: %d", len(queue))

    def _next_packet(self):
        with self._cond:
            while not self._queue and not self.closed:
                self._cond.wait()
            if self._queue:
                return self._queue.popleft()
            return None

    def send_packets(self):
        """Send queued packets until the writer is closed and drained."""
        flush = getattr(self.conn, "flush", None)
        while True:
            packet = self._next_packet()
            if packet is None:
                return
            if packet.is_video:
                type_id = TAG_VIDEO
            elif packet.is_metadata:
                type_id = TAG_SCRIPTDATAAMF0
            else:
                type_id = TAG_AUDIO
            chunk = ChunkStream(
                data=packet.data,
                length=len(packet.data),
                stream_id=packet.stream_id,
                timestamp=packet.timestamp + self.base_timestamp,
                type_id=type_id,
            )
            self.stats.record(packet.stream_id, chunk.length, packet.is_video)
            self._touch()
            self._rec_timestamp(chunk.timestamp, type_id)
            try:
                self.conn.write(chunk)
            except Exception:
                with self._cond:
                    self.closed = True
                    self._cond.notify_all()
                raise
            if flush is not None:
                flush()

    def _run_sender(self):
        try:
            self.send_packets()
        except Exception as exc:  # the player went away
            log.warning("send packets: %s", exc)

    def check(self):
        """Read and discard incoming messages; close on the first error."""
        while True:
            try:
                self.conn.read()
            except Exception as exc:
                self.close(exc)
                return

    def info(self):
        """Describe this player."""
        url = self.conn.get_info()[2]
        return StreamInfo(key=_key_from_url(url), url=url, uid=self.uid, inter=True)

    def close(self, err):
        """Stop accepting packets and close the connection."""
        log.warning("player %s closed: %s", self.uid, err)
        with self._cond:
            self.closed = True
            self._cond.notify_all()
        self.conn.close(err)


class VirReader(_Activity):
    """Reads media packets published over an RTMP connection.

    ``header_parser``, when given, is called with each packet and its
    result becomes the packet's ``header``.
    """

    def __init__(self, conn, timeout=DEFAULT_TIMEOUT, header_parser=None):
        super().__init__(timeout)
        self.uid = new_id()
        self.conn = conn
        self.stats = BandwidthStats()
        self._header_parser = header_parser

    def alive(self):
        """True while the last read happened within the timeout."""
        return self._is_alive()

    def read(self):
        """Return the next audio, video or metadata packet."""
        self._touch()
        while True:
            chunk = self.conn.read()
            if chunk.type_id in _MEDIA_TAGS:
                break
        packet = Packet(
            is_audio=chunk.type_id == TAG_AUDIO,
            is_video=chunk.type_id == TAG_VIDEO,
            is_metadata=chunk.type_id in (TAG_SCRIPTDATAAMF0, TAG_SCRIPTDATAAMF3),
            stream_id=chunk.stream_id,
            timestamp=chunk.timestamp,
            data=bytes(chunk.data),
        )
        self.stats.record(packet.stream_id, len(packet.data), packet.is_video)
        if self._header_parser is not None:
            packet.header = self._header_parser(packet)
        return packet

    def info(self):
        """Describe this publisher."""
        url = self.conn.get_info()[2]
        return StreamInfo(key=_key_from_url(url), url=url, uid=self.uid)

    def close(self, err):
        """Close the connection."""
        log.debug("publisher %s closed: %s", self.uid, err)
        self.conn.close(err)