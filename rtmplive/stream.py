"""Fan-out of one published stream to the players attached to it.

A reader offers ``read()`` returning a :class:`~rtmplive.media.Packet` and
raising when the publisher goes away, plus ``info()``, ``close(err)`` and
``alive()``. A writer offers ``write(packet)``, which raises on failure,
plus ``info()``, ``close(err)`` and ``alive()``. A writer may also offer
``calc_base_timestamp()``, which is called when it moves to a new stream.
"""

import logging
import queue
import threading
from dataclasses import replace

from .media import Cache, StreamInfo

log = logging.getLogger(__name__)

EMPTY_ID = ""
CHECK_INTERVAL = 5.0

_STOP = object()


class PackWriter:
    """Feeds packets to one writer from its own thread."""

    def __init__(self, writer, on_error=None, start=True):
        self.writer = writer
        self.init = False
        self._on_error = on_error
        self._queue = queue.Queue()
        if start:
            threading.Thread(target=self._run, daemon=True).start()

    def send(self, packet, key):
        """Queue ``packet``; ``key`` identifies the writer if writing fails."""
        self._queue.put((packet, key))

    def _stop(self):
        self._queue.put(_STOP)

    def _run(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            packet, key = item
            try:
                self.writer.write(packet)
            except Exception as exc:
                log.debug("[%s] write packet error: %s, remove", key, exc)
                if self._on_error is not None:
                    self._on_error(key)
                return


class Stream:
    """One published stream: its reader, its players and its replay cache."""

    def __init__(self, gop_num=1):
        self.cache = Cache(gop_num)
        self.reader = None
        self.writers = {}
        self.info = StreamInfo()
        self.is_start = False
        self._lock = threading.RLock()

    def id(self):
        """UID of the current reader, or an empty string."""
        if self.reader is not None:
            return self.reader.info().uid
        return EMPTY_ID

    def _snapshot(self):
        with self._lock:
            return list(self.writers.items())

    def _remove_writer(self, key):
        with self._lock:
            pw = self.writers.pop(key, None)
        if pw is not None:
            pw._stop()
        return pw

    def copy_to(self, dst):
        """Move every player of this stream to ``dst``."""
        dst.info = self.info
        for key, _ in self._snapshot():
            pw = self._remove_writer(key)
            if pw is None:
                continue
            calc = getattr(pw.writer, "calc_base_timestamp", None)
            if calc is not None:
                calc()
            dst.add_writer(pw.writer)

    def add_reader(self, reader):
        """Attach the publisher and start relaying in the background."""
        self.reader = reader
        threading.Thread(target=self.trans_start, daemon=True).start()

    def add_writer(self, writer):
        """Attach a player; it gets the cache before live packets."""
        key = writer.info().uid
        pw = PackWriter(writer, on_error=self._remove_writer)
        with self._lock:
            self.writers[key] = pw

    def trans_start(self):
        """Relay packets from the reader to every player until it stops."""
        self.is_start = True
        log.debug("trans start: %s", self.info)
        while True:
            if not self.is_start:
                self._close_inter()
                return
            try:
                packet = self.reader.read()
            except Exception:
                self._close_inter()
                self.is_start = False
                return

            self.cache.write(packet)

            for key, pw in self._snapshot():
                if not pw.init:
                    try:
                        self.cache.send(pw.writer)
                    except Exception as exc:
                        log.debug("[%s] send cache packet error: %s, remove",
                                  key, exc)
                        self._remove_writer(key)
                        continue
                    pw.init = True
                else:
                    pw.send(replace(packet), key)

    def trans_stop(self):
        """Stop relaying and close the running reader."""
        log.debug("trans stop: %s", self.info.key)
        if self.is_start and self.reader is not None:
            self.reader.close(ConnectionError("stop old"))
        self.is_start = False

    def check_alive(self):
        """Close timed-out parties and return how many are still alive."""
        alive = 0
        if self.reader is not None and self.is_start:
            if self.reader.alive():
                alive += 1
            else:
                self.reader.close(TimeoutError("read timeout"))

        for key, pw in self._snapshot():
            writer = pw.writer
            if writer is None:
                continue
            if not writer.alive():
                log.info("write timeout remove")
                self._remove_writer(key)
                writer.close(TimeoutError("write timeout"))
                continue
            alive += 1
        return alive

    def _close_inter(self):
        if self.reader is not None:
            log.debug("[%s] publisher closed", self.reader.info())
        for key, pw in self._snapshot():
            writer = pw.writer
            if writer is None:
                continue
            writer.close(ConnectionError("closed"))
            if writer.info().inter:
                self._remove_writer(key)
                log.debug("[%s] player closed and remove", writer.info())


class RtmpStream:
    """All live streams, keyed by ``app/name``."""

    def __init__(self, gop_num=1, check_interval=CHECK_INTERVAL, start=True):
        self.streams = {}
        self._gop_num = gop_num
        self._interval = check_interval
        self._lock = threading.Lock()
        self._idle = threading.Event()
        if start:
            threading.Thread(target=self._watch, daemon=True).start()

    def handle_reader(self, reader):
        """Attach a publisher, replacing any earlier one on the same key."""
        info = reader.info()
        log.debug("handle reader: %s", info)
        with self._lock:
            stream = self.streams.get(info.key)
            if stream is not None:
                stream.trans_stop()
                current = stream.id()
                if current != EMPTY_ID and current != info.uid:
                    fresh = Stream(self._gop_num)
                    stream.copy_to(fresh)
                    stream = fresh
                    self.streams[info.key] = fresh
            else:
                stream = Stream(self._gop_num)
                stream.info = info
                self.streams[info.key] = stream
        stream.add_reader(reader)

    def handle_writer(self, writer):
        """Attach a player to its stream.

        For an unknown key an empty stream is registered and the player is
        not attached.
        """
        info = writer.info()
        log.debug("handle writer: %s", info)
        with self._lock:
            stream = self.streams.get(info.key)
            if stream is None:
                stream = Stream(self._gop_num)
                stream.info = info
                self.streams[info.key] = stream
                return
        stream.add_writer(writer)

    def check_alive(self):
        """Drop streams with nobody left on them."""
        with self._lock:
            items = list(self.streams.items())
        for key, stream in items:
            if stream.check_alive() == 0:
                with self._lock:
                    if self.streams.get(key) is stream:
                        del self.streams[key]

    def _watch(self):
        while not self._idle.wait(self._interval):
            self.check_alive()