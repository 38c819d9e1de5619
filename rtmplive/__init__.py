"""Live streaming building blocks: RTMP chunking, fan-out, HTTP-FLV and HLS."""

__version__ = "0.1.0"

__all__ = [
    "chunk",
    "conn",
    "flvserver",
    "flvwriter",
    "handshake",
    "hls",
    "media",
    "packetqueue",
    "pio",
    "playlist",
    "pool",
    "readwriter",
    "stream",
    "timing",
    "uid",
    "virtual",
]