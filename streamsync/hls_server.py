"""
HLS Static Server

Serves segmented media from ``<root>/<stream>/...`` so a stream at
``hls/stream1/stream1.m3u8`` is available at
``http://localhost:8000/stream1/stream1.m3u8``. Every response carries
permissive CORS headers; a path without an extension falls back to the
same path with one of the recognized media extensions.
"""

import argparse
import functools
import html
import http.server
import logging
import os
import socketserver
import threading
import time
from pathlib import Path
from typing import Tuple

from .log import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
FALLBACK_EXTENSIONS = ("m3u8", "ts", "mp4", "key")

HLS_MIME_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/mp2t",
    ".mp4": "video/mp4",
    ".m4s": "video/iso.segment",
    ".key": "application/octet-stream",
}

CORS_HEADERS = (
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "GET, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type"),
)


class ReusableTCPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads = True
    allow_reuse_address = True


class HLSRequestHandler(http.server.SimpleHTTPRequestHandler):
    """Static file handler with CORS, extension fallback and request logging."""

    extensions_map = {
        **http.server.SimpleHTTPRequestHandler.extensions_map,
        **HLS_MIME_TYPES,
    }

    def __init__(self, *args, **kwargs):
        self._started = time.monotonic()
        super().__init__(*args, **kwargs)

    def end_headers(self):
        for name, value in CORS_HEADERS:
            self.send_header(name, value)
        # Playlists of live streams change every segment
        if getattr(self, "path", "").split("?", 1)[0].endswith(".m3u8"):
            self.send_header("Cache-Control", "no-cache")
        super().end_headers()

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        if self.path.split("?", 1)[0] in ("", "/") and not self._has_index():
            self._send_index()
            return
        super().do_GET()

    def translate_path(self, path: str) -> str:
        resolved = super().translate_path(path)
        if os.path.exists(resolved) or os.path.splitext(resolved)[1]:
            return resolved
        for ext in FALLBACK_EXTENSIONS:
            candidate = f"{resolved}.{ext}"
            if os.path.isfile(candidate):
                return candidate
        return resolved

    def _has_index(self) -> bool:
        root = Path(self.directory)
        return (root / "index.html").is_file() or (root / "index.htm").is_file()

    def _send_index(self):
        root = Path(self.directory)
        streams = sorted(p.name for p in root.iterdir() if p.is_dir()) if root.is_dir() else []
        items = "".join(
            f'<li><a href="/{html.escape(name)}/">{html.escape(name)}</a></li>' for name in streams
        )
        body = (
            "<h3>HLS server running</h3>"
            f"<p>Serving files from: {html.escape(str(root.resolve()))}</p>"
            f"<ul>{items}</ul>"
        ).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_request(self, code="-", size="-"):
        code = getattr(code, "value", code)
        elapsed_ms = (time.monotonic() - self._started) * 1000.0
        logger.info("%s %s %s %.1f ms", self.command, self.path, code, elapsed_ms)

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def make_server(root: str, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> ReusableTCPServer:
    """Bind a threaded server for ``root``. Port 0 picks a free port."""
    root_path = Path(root)
    if not root_path.is_dir():
        logger.warning("HLS root %s does not exist yet", root_path.resolve())
    handler = functools.partial(HLSRequestHandler, directory=str(root_path))
    return ReusableTCPServer((host, port), handler)


def serve_in_thread(
    root: str, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT
) -> Tuple[ReusableTCPServer, threading.Thread]:
    """Start the server in a daemon thread. Call ``server.shutdown()`` to stop."""
    server = make_server(root, host, port)
    thread = threading.Thread(target=server.serve_forever, name="hls-server", daemon=True)
    thread.start()
    bound_host, bound_port = server.server_address[:2]
    logger.info("HLS static server running at http://%s:%d", bound_host, bound_port)
    logger.info("Serving folder: %s", Path(root).resolve())
    return server, thread


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Serve HLS segments with permissive CORS headers.")
    parser.add_argument("root", nargs="?", default="hls", help="directory holding one folder per stream")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", DEFAULT_PORT)))
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    server = make_server(args.root, args.host, args.port)
    logger.info("HLS static server running at http://localhost:%d", server.server_address[1])
    logger.info("Serving folder: %s", Path(args.root).resolve())
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
