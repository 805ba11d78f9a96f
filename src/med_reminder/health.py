"""Liveness and readiness endpoints for container orchestration.

Serves ``GET /health`` (always 200 while the process runs) and
``GET /ready`` (200 once the service has started, 503 before) from a
background thread. Stdlib-only.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

logger = logging.getLogger(__name__)


class HealthServer:
    """Minimal HTTP server exposing health and readiness endpoints.

    Args:
        port: TCP port to bind. 0 picks a free port.
        host: Interface to bind.
    """

    def __init__(self, port: int = 8080, host: str = "") -> None:
        self._ready = threading.Event()
        self._server = ThreadingHTTPServer((host, port), self._handler_class())
        self._server.daemon_threads = True
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def mark_ready(self) -> None:
        self._ready.set()

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        ready = self._ready

        class _Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                if self.path == "/health":
                    self._reply(200, "OK")
                elif self.path == "/ready":
                    if ready.is_set():
                        self._reply(200, "Ready")
                    else:
                        self._reply(503, "Not ready")
                else:
                    self._reply(404, "Not found")

            def _reply(self, status: int, body: str) -> None:
                payload = body.encode("utf-8")
                self.send_response(status)
                self.send_header("Content-Type", "text/plain; charset=utf-8")
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            def log_message(self, format: str, *args: object) -> None:
                logger.debug("health: " + format, *args)

        return _Handler

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="health-server", daemon=True
        )
        self._thread.start()
        logger.info("Health check server started on :%d", self.port)

    def shutdown(self) -> None:
        """Stop serving and release the socket."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()
