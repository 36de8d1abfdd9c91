"""
HTTP server for the gallery API.

Uses stdlib http.server. Routes requests to handler functions in handlers.py.
"""

from __future__ import annotations

import json
import logging
import re
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any
from urllib.parse import unquote

from huh import API_DEFAULT_PORT, API_DEFAULT_HOST, API_MAX_UPLOAD_BYTES
from huh.api.handlers import (
    handle_image_metadata,
    handle_list_images,
    handle_status,
    handle_upload,
    handle_upload_file,
    handle_view_image,
)
from huh.api.page import INDEX_HTML

logger = logging.getLogger(__name__)

# Route patterns
_VIEW_RE = re.compile(r"^/view/([^/]+)$")
_METADATA_RE = re.compile(r"^/api/metadata/([^/]+)$")


class GalleryAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the gallery API.

    The gallery store is attached to the server instance and accessed via
    self.server.
    """

    # Access log goes to the module logger at debug
    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(format, *args)

    def _send_json(self, status: int, data: Any) -> None:
        body = json.dumps(data).encode("utf-8")
        self._send_bytes(status, body, "application/json")

    def _send_bytes(self, status: int, data: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_result(self, status: int, result: Any, content_type: str) -> None:
        if isinstance(result, bytes):
            self._send_bytes(status, result, content_type)
        else:
            self._send_json(status, result)

    def _read_body(self) -> bytes | None:
        """Request body, or None if it exceeds API_MAX_UPLOAD_BYTES."""
        try:
            length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            length = 0
        if length > API_MAX_UPLOAD_BYTES:
            return None
        if length <= 0:
            return b""
        return self.rfile.read(length)

    def do_GET(self) -> None:
        path = self.path.split("?")[0]  # strip query string
        store = self.server.store  # type: ignore[attr-defined]

        if path == "/":
            self._send_bytes(200, INDEX_HTML.encode("utf-8"), "text/html; charset=utf-8")
            return

        # GET /status
        if path == "/status":
            code, data = handle_status(store)
            self._send_json(code, data)
            return

        # GET /api/images
        if path == "/api/images":
            code, data = handle_list_images(store)
            self._send_json(code, data)
            return

        # GET /view/<name>
        m = _VIEW_RE.match(path)
        if m:
            code, result = handle_view_image(unquote(m.group(1)), store)
            self._send_result(code, result, "image/png")
            return

        # GET /api/metadata/<name>
        m = _METADATA_RE.match(path)
        if m:
            code, data = handle_image_metadata(unquote(m.group(1)), store)
            self._send_json(code, data)
            return

        self._send_json(404, {"error": "Not found"})

    def do_POST(self) -> None:
        path = self.path.split("?")[0]
        store = self.server.store  # type: ignore[attr-defined]

        body = self._read_body()
        if body is None:
            self.close_connection = True
            self._send_json(413, {
                "success": False,
                "error": f"Payload too large (max {API_MAX_UPLOAD_BYTES} bytes)",
            })
            return

        # POST /api/upload
        if path == "/api/upload":
            code, data = handle_upload(body, store)
            self._send_json(code, data)
            return

        # POST /api/upload-file
        if path == "/api/upload-file":
            content_type = self.headers.get("Content-Type", "")
            code, data = handle_upload_file(body, content_type, store)
            self._send_json(code, data)
            return

        self._send_json(404, {"error": "Not found"})


class GalleryAPIServer(HTTPServer):
    """HTTPServer subclass that carries the gallery store."""

    def __init__(self, address: tuple[str, int], store: Any) -> None:
        super().__init__(address, GalleryAPIHandler)
        self.store = store


def run_api(
    host: str = API_DEFAULT_HOST,
    port: int = API_DEFAULT_PORT,
    store: Any = None,
) -> None:
    """Start the gallery server (blocking).

    Args:
        host: Bind address (default 127.0.0.1)
        port: Listen port (default 8080)
        store: GalleryStore instance (created if not provided)
    """
    from huh.store import GalleryStore

    if store is None:
        store = GalleryStore()
    store.ensure_root()

    server = GalleryAPIServer((host, port), store)

    print(f"HUH gallery listening on http://{host}:{port}")
    print(f"  Images directory: {store.root}")
    print(f"  GET  /                    — camera capture & gallery page")
    print(f"  POST /api/upload          — capture upload (JSON data URL)")
    print(f"  POST /api/upload-file     — .huh file upload (multipart)")
    print(f"  GET  /api/images          — list images")
    print(f"  GET  /api/metadata/<name> — image metadata")
    print(f"  GET  /view/<name>         — image as PNG")
    print(f"  GET  /status              — service health")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()
