"""
Minimal HTTP server for the relay's status.
Serves GET /health and GET /status on the configured port (or PORT) so
container healthchecks succeed and operators can see connection state,
the sent counter and the last scan result.
Runs in a daemon thread; no-op when no port is configured (e.g. local dev).
"""
from __future__ import annotations

import json
import os
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional

from shared.utils.logging import get_logger

logger = get_logger(__name__)

StatusFn = Callable[[], dict[str, Any]]


def resolve_port(configured: int = 0) -> Optional[int]:
    """Configured port wins; otherwise PORT from the environment; None disables."""
    if configured:
        return configured
    port_str = os.environ.get("PORT")
    if not port_str:
        return None
    try:
        return int(port_str)
    except ValueError:
        return None


def start_health_server(service_name: str, status_fn: StatusFn, port: int = 0) -> Optional[HTTPServer]:
    """
    Start a daemon thread that answers GET /health and GET /status.
    /status returns status_fn() merged with the service name.
    """
    resolved = resolve_port(port)
    if resolved is None:
        return None

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            path = self.path.rstrip("/")
            if path == "/health":
                self._reply(200, {"status": "ok", "service": service_name})
            elif path == "/status":
                self._reply(200, {"service": service_name, **status_fn()})
            else:
                self.send_response(404)
                self.end_headers()

        def _reply(self, code: int, payload: dict[str, Any]) -> None:
            body = json.dumps(payload).encode("utf-8")
            self.send_response(code)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            pass  # Suppress request logging

    httpd = HTTPServer(("0.0.0.0", resolved), Handler)
    t = threading.Thread(target=httpd.serve_forever, daemon=True)
    t.start()
    logger.info("status_server_started", port=resolved)
    return httpd
