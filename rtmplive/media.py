"""Packets and the caches replayed to newly attached players.

A packet header is any object. A video header exposes ``is_key_frame`` and
``is_seq``; an audio header exposes ``sound_format`` and ``aac_packet_type``.
A writer is any object with a ``write(packet)`` method that raises on failure.
"""

from collections import deque
from dataclasses import dataclass, replace
from typing import Any

SOUND_AAC = 10
AAC_SEQHDR = 0
MAX_GOP_CAP = 1024


@dataclass
class StreamInfo:
    """Identity of a reader or writer."""

    key: str = ""
    url: str = ""
    uid: str = ""
    inter: bool = False


@dataclass
class Packet:
    """One audio, video or metadata message."""

    is_audio: bool = False
    is_video: bool = False
    is_metadata: bool = False
    timestamp: int = 0
    stream_id: int = 0
    header: Any = None
    data: bytes = b""


class GopTooBigError(Exception):
    """Raised when a group of pictures exceeds its capacity."""

    def __init__(self):
        super().__init__("gop too big")


def _is_video_header(header):
    return hasattr(header, "is_key_frame") and hasattr(header, "is_seq")


def _is_audio_header(header):
    return hasattr(header, "sound_format") and hasattr(header, "aac_packet_type")


class GopCache:
    """Keeps the last ``num`` groups of pictures, each starting at a key frame."""

    def __init__(self, num=1):
        if num < 1:
            raise ValueError("gop cache needs room for at least one gop")
        self._gops = deque(maxlen=num)
        self._started = False

    @staticmethod
    def _append(gop, packet):
        if len(gop) >= MAX_GOP_CAP:
            raise GopTooBigError()
        gop.append(packet)

    def write(self, packet):
        """Add a packet; packets before the first key frame are ignored."""
        starts = (
            packet.is_video
            and packet.header.is_key_frame
            and not packet.header.is_seq
        )
        if not (starts or self._started):
            return
        self._started = True
        if starts:
            self._gops.append([])
        try:
            self._append(self._gops[-1], packet)
        except GopTooBigError:
            pass

    def send(self, writer):
        """Write every cached packet, oldest group first."""
        for gop in list(self._gops):
            for packet in gop:
                writer.write(packet)


class SpecialCache:
    """Holds the latest packet of one kind (metadata or a sequence header)."""

    def __init__(self):
        self._packet = None

    def write(self, packet):
        """Remember ``packet``."""
        self._packet = packet

    def send(self, writer):
        """Write a copy of the remembered packet, if any."""
        if self._packet is None:
            return
        writer.write(replace(self._packet))


class Cache:
    """Metadata, sequence headers and recent GOPs for late-joining players."""

    def __init__(self, gop_num=1):
        self.gop = GopCache(gop_num)
        self.video_seq = SpecialCache()
        self.audio_seq = SpecialCache()
        self.metadata = SpecialCache()

    def write(self, packet):
        """File a copy of ``packet`` into the matching cache."""
        packet = replace(packet)
        header = packet.header
        if packet.is_metadata:
            self.metadata.write(packet)
            return
        if not packet.is_video:
            if _is_audio_header(header):
                if (
                    header.sound_format == SOUND_AAC
                    and header.aac_packet_type == AAC_SEQHDR
                ):
                    self.audio_seq.write(packet)
                return
        else:
            if not _is_video_header(header):
                return
            if header.is_seq:
                self.video_seq.write(packet)
                return
        self.gop.write(packet)

    def send(self, writer):
        """Replay metadata, video and audio headers, then the cached GOPs."""
        self.metadata.send(writer)
        self.video_seq.send(writer)
        self.audio_seq.send(writer)
        self.gop.send(writer)