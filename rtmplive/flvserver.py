"""HTTP-FLV playback of live streams and a JSON listing of them."""

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .flvwriter import FLVWriter

log = logging.getLogger(__name__)


class _LazyResponse:
    """Sends the HTTP status line and headers before the first body byte."""

    def __init__(self, request):
        self._request = request
        self._started = False
        self._lock = threading.Lock()

    def write(self, data):
        with self._lock:
            if not self._started:
                self._started = True
                self._request.send_response(200)
                self._request.send_header("Access-Control-Allow-Origin", "*")
                self._request.send_header("Content-Type", "video/x-flv")
                self._request.end_headers()
            self._request.wfile.write(data)
            self._request.wfile.flush()
        return len(data)


class FlvServer:
    """Serves ``/app/name.flv`` to players and ``/streams`` as JSON.

    ``handler`` is an :class:`~rtmplive.stream.RtmpStream`. ``wait_timeout``
    bounds how long :meth:`handle_conn` waits for a player to finish; None
    waits until the player is closed.
    """

    def __init__(self, handler, wait_timeout=None):
        self.handler = handler
        self.wait_timeout = wait_timeout

    def get_streams(self):
        """List publishers and players as ``{"key", "id"}`` entries."""
        items = list(self.handler.streams.items())
        publishers = [
            {"key": key, "id": stream.reader.info().uid}
            for key, stream in items
            if stream.reader is not None
        ]
        players = []
        for key, stream in items:
            for _, pw in stream._snapshot():
                if pw.writer is not None:
                    players.append({"key": key, "id": pw.writer.info().uid})
        return {"publishers": publishers, "players": players}

    def streams_json(self):
        """The stream listing encoded as JSON bytes."""
        return json.dumps(self.get_streams()).encode()

    def parse_path(self, path):
        """Split ``/app/name.flv`` into ``(app, name, key)``.

        Raises ValueError for anything that is not such a path.
        """
        pos = path.rfind(".")
        if pos < 0 or path[pos:] != ".flv":
            raise ValueError("invalid path")
        key = path.lstrip("/")
        key = key[: -len(".flv")] if key.endswith(".flv") else key
        parts = key.split("/", 1)
        log.debug("path: %s, parts: %s", key, parts)
        if len(parts) != 2:
            raise ValueError("invalid path")
        return parts[0], parts[1], key

    def handle_conn(self, path, url, out):
        """Attach an FLV player writing to ``out`` and wait for it to end.

        Raises ValueError for a malformed path and LookupError when no
        publisher is live on the requested stream. Returns the writer.
        """
        app, title, key = self.parse_path(path)
        publishers = self.get_streams()["publishers"]
        if not any(item["key"] == key for item in publishers):
            raise LookupError("invalid path")
        writer = FLVWriter(app, title, url, out)
        self.handler.handle_writer(writer)
        writer.wait(self.wait_timeout)
        return writer

    def _make_server(self, host, port):
        server = self

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                parts = urlsplit(self.path)
                if parts.path == "/streams":
                    body = server.streams_json()
                    self.send_response(200)
                    self.send_header("Content-Type", "application/json")
                    self.send_header("Content-Length", str(len(body)))
                    self.end_headers()
                    self.wfile.write(body)
                    return
                try:
                    server.handle_conn(parts.path, self.path, _LazyResponse(self))
                except ValueError:
                    self.send_error(400, "invalid path")
                except LookupError:
                    self.send_error(404, "invalid path")
                except Exception as exc:
                    log.error("http flv handle_conn failed: %s", exc)

            def log_message(self, fmt, *args):
                log.debug(fmt, *args)

        return ThreadingHTTPServer((host, port), _Handler)

    def serve(self, host, port):
        """Serve HTTP on ``host:port`` until interrupted."""
        with self._make_server(host, port) as httpd:
            httpd.serve_forever()