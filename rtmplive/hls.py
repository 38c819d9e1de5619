"""HTTP server for HLS playlists and MPEG-TS segments of live streams.

A source is any object with ``alive()``, ``info()`` and a ``ts_cache``
attribute holding a :class:`~rtmplive.playlist.TSCache` (or None once the
source has been cleaned up).
"""

import logging
import posixpath
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .playlist import NoKeyError

log = logging.getLogger(__name__)

CHECK_INTERVAL = 5.0
NO_PUBLISHER = "no publisher"

CROSSDOMAIN_XML = b"""<?xml version="1.0" ?>
<cross-domain-policy>
\t<allow-access-from domain="*" />
\t<allow-http-request-headers-from domain="*" headers="*"/>
</cross-domain-policy>"""


def _ext(path):
    base = path.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _base(path):
    stripped = path.rstrip("/")
    if not stripped:
        return "/" if path else "."
    return posixpath.basename(stripped)


def parse_m3u8(path):
    """Stream key of a playlist path such as ``/live/movie.m3u8``."""
    path = path.lstrip("/")
    ext = _ext(path)
    if not ext:
        return path
    return path.split(ext, 1)[0]


def parse_ts(path):
    """Stream key of a segment path such as ``/live/movie/123.ts``."""
    path = path.lstrip("/")
    parts = path.split("/", 2)
    if len(parts) != 3:
        raise ValueError(f"invalid path={path}")
    return f"{parts[0]}/{parts[1]}"


def _error(status, message):
    body = (message + "\n").encode()
    headers = {
        "Content-Type": "text/plain; charset=utf-8",
        "X-Content-Type-Options": "nosniff",
    }
    return status, headers, body


class HlsServer:
    """Holds HLS sources by stream key and answers playlist/segment requests."""

    def __init__(self, keep_after_end=False, check_interval=CHECK_INTERVAL,
                 start=True, ssl_context=None):
        self.keep_after_end = keep_after_end
        self.ssl_context = ssl_context
        self._sources = {}
        self._lock = threading.Lock()
        self._interval = check_interval
        self._idle = threading.Event()
        if start:
            threading.Thread(target=self._watch, daemon=True).start()

    def register(self, key, source):
        """Return the source for ``key``, storing ``source`` if there is none."""
        with self._lock:
            existing = self._sources.get(key)
            if existing is not None:
                return existing
            log.debug("new hls source: %s", key)
            self._sources[key] = source
            return source

    def get_source(self, key):
        """The source for ``key``, or None."""
        with self._lock:
            return self._sources.get(key)

    def check_stop(self, keep_after_end):
        """Remove dead sources unless ``keep_after_end`` is set."""
        with self._lock:
            items = list(self._sources.items())
        for key, source in items:
            if not source.alive() and not keep_after_end:
                log.debug("check stop and remove: %s", source.info())
                with self._lock:
                    if self._sources.get(key) is source:
                        del self._sources[key]

    def _watch(self):
        while not self._idle.wait(self._interval):
            self.check_stop(self.keep_after_end)

    def _cache_for(self, key):
        source = self.get_source(key) if key is not None else None
        if source is None:
            return None
        return source.ts_cache

    def handle(self, path):
        """Answer a GET for ``path`` as ``(status, headers, body)``."""
        if _base(path) == "crossdomain.xml":
            return 200, {"Content-Type": "application/xml"}, CROSSDOMAIN_XML

        ext = _ext(path)
        if ext == ".m3u8":
            cache = self._cache_for(parse_m3u8(path))
            if cache is None:
                return _error(403, NO_PUBLISHER)
            body = cache.m3u8_playlist()
            headers = {
                "Access-Control-Allow-Origin": "*",
                "Cache-Control": "no-cache",
                "Content-Type": "application/x-mpegURL",
                "Content-Length": str(len(body)),
            }
            return 200, headers, body
        if ext == ".ts":
            try:
                key = parse_ts(path)
            except ValueError:
                key = None
            cache = self._cache_for(key)
            if cache is None:
                return _error(403, NO_PUBLISHER)
            try:
                item = cache.get_item(path)
            except NoKeyError as exc:
                log.debug("get item error: %s", exc)
                return _error(400, str(exc))
            headers = {
                "Access-Control-Allow-Origin": "*",
                "Content-Type": "video/mp2ts",
                "Content-Length": str(len(item.data)),
            }
            return 200, headers, item.data
        return 200, {}, b""

    def _make_server(self, host, port):
        server = self

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                status, headers, body = server.handle(urlsplit(self.path).path)
                self.send_response(status)
                for name, value in headers.items():
                    self.send_header(name, value)
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, fmt, *args):
                log.debug(fmt, *args)

        httpd = ThreadingHTTPServer((host, port), _Handler)
        if self.ssl_context is not None:
            httpd.socket = self.ssl_context.wrap_socket(httpd.socket, server_side=True)
        return httpd

    def serve(self, host, port):
        """Serve HTTP (or HTTPS with ``ssl_context``) until interrupted."""
        with self._make_server(host, port) as httpd:
            httpd.serve_forever()