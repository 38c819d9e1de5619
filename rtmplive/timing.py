"""Timestamp alignment, audio frame batching and segment timing for HLS."""

import time
from dataclasses import dataclass, field

SYNC_MS = 2
H264_DEFAULT_HZ = 90
CACHE_MAX_FRAMES = 6


class Aligner:
    """Snaps audio DTS values onto a regular frame grid when close enough."""

    def __init__(self):
        self.frame_num = 0
        self.frame_base = 0

    def align(self, dts, inc):
        """Return the aligned DTS for a frame of ``inc`` ticks."""
        estimated = self.frame_base + self.frame_num * inc
        if abs(estimated - dts) <= SYNC_MS * H264_DEFAULT_HZ:
            self.frame_num += 1
            return estimated
        self.frame_num = 1
        self.frame_base = dts
        return dts


class AudioCache:
    """Collects audio frames to be muxed together."""

    def __init__(self):
        self._buf = bytearray()
        self._count = 0
        self.pts = 0

    def cache(self, data, pts):
        """Append a frame; the first frame of a batch sets the batch PTS."""
        if self._count == 0:
            self._buf.clear()
            self.pts = pts
        self._buf += data
        self._count += 1

    def take_frame(self):
        """Close the batch and return ``(length, pts, data)``."""
        self._count = 0
        return len(self._buf), self.pts, bytes(self._buf)

    def __len__(self):
        return self._count


@dataclass
class SegmentStatus:
    """Timestamps seen in the segment being built."""

    has_video: bool = False
    seq_id: int = 0
    created_at: float | None = None
    seg_begin_at: float = field(default_factory=time.time)
    has_first_timestamp: bool = False
    first_timestamp: int = 0
    last_timestamp: int = 0

    def update(self, is_video, timestamp):
        """Record a packet timestamp."""
        if is_video:
            self.has_video = True
        if not self.has_first_timestamp:
            self.has_first_timestamp = True
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp

    def reset_and_new(self):
        """Start a new segment."""
        self.seq_id += 1
        self.has_video = False
        self.created_at = time.time()
        self.has_first_timestamp = False

    def duration_ms(self):
        """Milliseconds between the first and last timestamp."""
        return self.last_timestamp - self.first_timestamp