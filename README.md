# rtmplive

Pure-Python building blocks for a live video streaming server: RTMP chunk
framing and handshakes, fan-out of one published stream to many players,
a replay cache for late joiners, HTTP-FLV delivery and HLS playlist and
segment serving.

The package uses only the standard library.

## What is inside

| Module | Purpose |
| --- | --- |
| `rtmplive.pio` | Big- and little-endian integer readers (`u32be`, `i24be`, ...) and packers (`pack_u32be`, `pack_i24be`, ...) |
| `rtmplive.pool` | `Pool`, a bump allocator handing out writable `memoryview` slices of a shared buffer |
| `rtmplive.packetqueue` | `PacketQueue`, a thread-safe bounded stack: `pop()` returns the newest item, `all()` empties it oldest first |
| `rtmplive.uid` | `new_id()` for 16-character URL-safe identifiers, `rand_string(n)` for random alphanumerics |
| `rtmplive.readwriter` | `ReadWriter`, buffered stream access whose read and write errors stick and are raised again |
| `rtmplive.chunk` | `ChunkStream`, RTMP chunk header encoding, message splitting and chunk reassembly |
| `rtmplive.conn` | `Conn`, an RTMP connection: chunk demultiplexing, acknowledgements and control messages |
| `rtmplive.handshake` | `handshake_client` (simple handshake) and `handshake_server`, which answers both simple and digest-signed clients |
| `rtmplive.media` | `Packet`, `StreamInfo`, and `Cache`, which keeps metadata, sequence headers and recent GOPs |
| `rtmplive.virtual` | `VirReader` and `VirWriter`, which turn an RTMP connection into a packet source or sink, with `BandwidthStats` |
| `rtmplive.stream` | `Stream` and `RtmpStream`, which fan one publisher out to many players |
| `rtmplive.flvwriter` | `FLVWriter`, which writes queued packets as an FLV byte stream |
| `rtmplive.flvserver` | `FlvServer`, an HTTP server for `/<app>/<name>.flv` and `/streams` |
| `rtmplive.timing` | `Aligner`, `AudioCache` and `SegmentStatus` for HLS timestamp handling |
| `rtmplive.playlist` | `TSItem` and `TSCache`, which keeps recent TS segments and renders the M3U8 playlist |
| `rtmplive.hls` | `HlsServer`, `parse_m3u8` and `parse_ts` |

## Examples

Packing and reading integers:

```python
from rtmplive import pio

raw = pio.pack_u32be(0x01020304)
assert raw == b"\x01\x02\x03\x04"
assert pio.u32be(raw) == 0x01020304
assert pio.i24be(pio.pack_i24be(-2)) == -2
```

Making identifiers:

```python
from rtmplive.uid import new_id, rand_string

session_id = new_id()    # 16 URL-safe base64 characters
suffix = rand_string(8)  # 8 characters from 0-9, a-z, A-Z
```

Keeping segments and rendering a playlist:

```python
from rtmplive.playlist import TSCache, TSItem

cache = TSCache("live/movie")  # keeps the 3 most recent segments
cache.set_item("/live/movie/1.ts", TSItem("/live/movie/1.ts", 1, 3000, b"..."))
print(cache.m3u8_playlist().decode())
# #EXTM3U
# #EXT-X-VERSION:3
# #EXT-X-ALLOW-CACHE:NO
# #EXT-X-TARGETDURATION:4
# #EXT-X-MEDIA-SEQUENCE:1
#
# #EXTINF:3.000,
# /live/movie/1.ts
```

Working out which stream an HLS request is for:

```python
from rtmplive.hls import parse_m3u8, parse_ts

parse_m3u8("/live/movie.m3u8")        # "live/movie"
parse_ts("/live/movie/1700000000.ts")  # "live/movie"
```

Answering HLS requests without a socket: `HlsServer.handle(path)` returns
`(status, headers, body)`. A source is any object with `alive()`, `info()`
and a `ts_cache` attribute.

```python
from rtmplive.hls import HlsServer

hls = HlsServer(start=False)
hls.handle("/live/movie.m3u8")  # (403, {...}, b"no publisher\n") until a source is registered
```

`HlsServer.serve(host, port)` and `FlvServer.serve(host, port)` run the
corresponding HTTP server until interrupted.

## Stream keys

A stream is named `<app>/<name>`, taken from the URL path
(`rtmp://host/live/movie` gives `live/movie`). The same key is used for
HTTP-FLV (`/live/movie.flv`) and HLS (`/live/movie.m3u8`).

## Behaviour worth knowing

- A player attached to a `Stream` first receives the cached metadata, the
  video and audio sequence headers, and then the buffered GOPs, so playback
  starts on a key frame.
- `RtmpStream.handle_writer` for a key with no stream yet registers an empty
  stream and does not attach the player.
- When a `VirWriter` or `FLVWriter` queue is nearly full, queued packets are
  thinned, keeping sequence headers, key frames and, where possible, audio.
- Packet headers are plain objects: video headers expose `is_key_frame` and
  `is_seq`, audio headers `sound_format` and `aac_packet_type`. `VirReader`
  takes an optional `header_parser` to attach them; `FLVWriter` takes an
  optional `metadata_transform` for metadata bodies.

## What the package does not do

- There is no command-line program; servers are started from your own code.
- RTMP command messages (connect, createStream, publish, play) and AMF
  encoding are not handled, so there is no ready-made RTMP server or client
  session: `Conn` and the handshakes work on streams you open yourself.
- There is no FLV demuxer and no MPEG-TS muxer. `HlsServer` serves the
  segments held in the `TSCache` of the sources you register; it does not
  cut segments from a live stream.
- There is no HTTP control API, configuration file or stream-key storage.