"""
Fake Moonraker server for developing without a printer.

    python -m klipper_exporter.mock.fake_moonraker_server
    klipper-exporter probe --target 127.0.0.1:7125 --module printer_objects

Serves the canned payloads from mock.payloads, counts requests per path
and can be told to break individual endpoints, which is what the tests
use it for.
"""

from __future__ import annotations

import json
import threading
import time
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Optional, Set
from urllib.parse import urlsplit

from klipper_exporter.mock.payloads import ROUTES


class FakeMoonrakerServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address=("127.0.0.1", 7125), api_key: Optional[str] = None):
        super().__init__(address, _MoonrakerHandler)
        self.api_key = api_key
        self.hits: Counter = Counter()
        self.last_query: Dict[str, str] = {}
        self.failing: Set[str] = set()
        self.delays: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def target(self) -> str:
        host, port = self.server_address[:2]
        return f"{host}:{port}"

    def record(self, path: str, query: str):
        with self._lock:
            self.hits[path] += 1
            self.last_query[path] = query


class _MoonrakerHandler(BaseHTTPRequestHandler):
    server: FakeMoonrakerServer

    def do_GET(self):
        url = urlsplit(self.path)
        self.server.record(url.path, url.query)

        delay = self.server.delays.get(url.path)
        if delay:
            time.sleep(delay)

        if self.server.api_key and self.headers.get("X-API-KEY") != self.server.api_key:
            self._send_json(401, {"error": {"code": 401, "message": "Unauthorized"}})
            return

        factory = ROUTES.get(url.path)
        if factory is None:
            self._send_json(404, {"error": {"code": 404, "message": "Not Found"}})
        elif url.path in self.server.failing:
            body = b"<html>upstream exploded</html>"
            self.send_response(500)
            self.send_header("Content-Type", "text/html")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        else:
            self._send_json(200, factory())

    def _send_json(self, status: int, payload):
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=UTF-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 7125):
    server = FakeMoonrakerServer((host, port))
    print(f"Fake Moonraker server running at http://{host}:{port}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
