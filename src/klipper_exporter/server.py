"""
HTTP front end for Prometheus.

    GET /probe?target=printer.local:7125&modules=process_stats&modules=history
    GET /metrics        the exporter's own process metrics

Each probe request runs one collection on its own thread. The API key comes
from an "Authorization: APIKEY <key>" header, falling back to the
--moonraker.apikey option and then the MOONRAKER_APIKEY environment variable.
A scrape that outlives Prometheus's X-Prometheus-Scrape-Timeout-Seconds is
abandoned with a 503.
"""

from __future__ import annotations

import logging
import os
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from prometheus_client import REGISTRY, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from klipper_exporter.collector.errors import CollectionCancelled
from klipper_exporter.collector.snapshot import SnapshotCollector
from klipper_exporter.exposition import render
from klipper_exporter.metrics import DEFAULT_MODULES

log = logging.getLogger(__name__)

API_KEY_ENV = "MOONRAKER_APIKEY"
DEFAULT_LISTEN_ADDRESS = ":9101"
SCRAPE_TIMEOUT_HEADER = "X-Prometheus-Scrape-Timeout-Seconds"


class ValidationError(ValueError):
    """The probe request itself is malformed. Reported to the caller as a 400."""


def parse_probe_query(query: str) -> Tuple[str, List[str]]:
    params = parse_qs(query, keep_blank_values=True)
    targets = params.get("target", [])
    if len(targets) != 1 or not targets[0]:
        raise ValidationError("'target' parameter must be specified once")
    modules = params.get("modules") or list(DEFAULT_MODULES)
    return targets[0], modules


def resolve_api_key(authorization: Optional[str], default_api_key: str = "") -> str:
    """Header first, then the configured key, then the environment."""
    if authorization and authorization.startswith("APIKEY"):
        log.debug("Using API key from the Authorization header")
        return authorization[len("APIKEY"):].strip()
    if default_api_key:
        log.debug("Using API key from the --moonraker.apikey option")
        return default_api_key
    env_key = os.environ.get(API_KEY_ENV, "")
    if env_key:
        log.debug("Using API key from the %s environment variable", API_KEY_ENV)
    return env_key


def parse_listen_address(address: str) -> Tuple[str, int]:
    """":9101" -> ("", 9101), "127.0.0.1:9101" -> ("127.0.0.1", 9101), "[::]:9101" -> ("::", 9101)."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected [host]:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def parse_scrape_timeout(value: Optional[str]) -> Optional[float]:
    """Seconds Prometheus will wait for this scrape, or None if it didn't say."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        log.debug("Ignoring bad %s header %r", SCRAPE_TIMEOUT_HEADER, value)
        return None
    return seconds if seconds > 0 else None


class ProbeServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address: Tuple[str, int],
        collector: Optional[SnapshotCollector] = None,
        api_key: str = "",
    ):
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, _ProbeHandler)
        self.collector = collector if collector is not None else SnapshotCollector()
        self.api_key = api_key


class _ProbeHandler(BaseHTTPRequestHandler):
    server: ProbeServer

    def do_GET(self):
        url = urlsplit(self.path)
        if url.path == "/probe":
            self._probe(url.query)
        elif url.path == "/metrics":
            self._send(200, generate_latest(REGISTRY), CONTENT_TYPE_LATEST)
        else:
            self._send(404, b"404 page not found\n")

    def _probe(self, query: str):
        try:
            target, modules = parse_probe_query(query)
        except ValidationError as e:
            self._send(400, f"{e}\n".encode())
            return

        log.info("Starting metrics collection of %s for %s", modules, target)
        api_key = resolve_api_key(self.headers.get("Authorization"), self.server.api_key)
        timeout = parse_scrape_timeout(self.headers.get(SCRAPE_TIMEOUT_HEADER))
        cancel = threading.Event()
        timer = None
        if timeout is not None:
            # Prometheus has given up on us by then; stop hitting the printer
            timer = threading.Timer(timeout, cancel.set)
            timer.daemon = True
            timer.start()

        try:
            samples = self.server.collector.collect(target, modules, api_key, cancel=cancel)
        except CollectionCancelled as e:
            log.warning("Abandoned collection for %s after %ss: %s", target, timeout, e)
            self._send(503, f"{e}\n".encode())
            return
        finally:
            if timer is not None:
                timer.cancel()
        self._send(200, render(samples), CONTENT_TYPE_LATEST)

    def _send(self, status: int, body: bytes, content_type: str = "text/plain; charset=utf-8"):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


def serve(
    listen_address: str = DEFAULT_LISTEN_ADDRESS,
    api_key: str = "",
    timeout_seconds: float = 5.0,
):
    host, port = parse_listen_address(listen_address)
    server = ProbeServer((host, port), SnapshotCollector(timeout_seconds=timeout_seconds), api_key)
    log.info("Beginning to serve on port %s", listen_address)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
