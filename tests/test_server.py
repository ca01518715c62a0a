"""
End-to-end tests for the /probe endpoint.

Starts the fake Moonraker server and the probe server in threads on free
ports, then scrapes the probe server the way Prometheus would.
"""

import threading
import time

import httpx
import pytest

from klipper_exporter.collector.snapshot import SnapshotCollector
from klipper_exporter.mock.fake_moonraker_server import FakeMoonrakerServer
from klipper_exporter.server import (
    ProbeServer,
    ValidationError,
    parse_listen_address,
    parse_probe_query,
    parse_scrape_timeout,
    resolve_api_key,
)


def _start(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def moonraker():
    server = _start(FakeMoonrakerServer(("127.0.0.1", 0)))
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def probe_server():
    server = _start(ProbeServer(("127.0.0.1", 0), SnapshotCollector(timeout_seconds=2.0)))
    yield server
    server.shutdown()
    server.server_close()


def _probe_url(server) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"


def test_parse_probe_query_defaults_modules():
    target, modules = parse_probe_query("target=printer:7125")
    assert target == "printer:7125"
    assert modules == ["process_stats", "job_queue", "system_info"]


def test_parse_probe_query_repeated_modules():
    _, modules = parse_probe_query("target=p:7125&modules=history&modules=spoolman")
    assert modules == ["history", "spoolman"]


@pytest.mark.parametrize("query", ["", "target=", "target=a:1&target=b:2", "modules=history"])
def test_parse_probe_query_rejects_bad_target(query):
    with pytest.raises(ValidationError):
        parse_probe_query(query)


def test_api_key_precedence(monkeypatch):
    monkeypatch.setenv("MOONRAKER_APIKEY", "from-env")
    assert resolve_api_key("APIKEY from-header", "from-cli") == "from-header"
    assert resolve_api_key(None, "from-cli") == "from-cli"
    assert resolve_api_key("Bearer nope", "") == "from-env"

    monkeypatch.delenv("MOONRAKER_APIKEY")
    assert resolve_api_key(None, "") == ""


def test_parse_listen_address():
    assert parse_listen_address(":9101") == ("", 9101)
    assert parse_listen_address("127.0.0.1:9200") == ("127.0.0.1", 9200)
    assert parse_listen_address("[::]:9101") == ("::", 9101)
    assert parse_listen_address("[::1]:9200") == ("::1", 9200)
    with pytest.raises(ValueError):
        parse_listen_address("9101")


def test_probe_without_target_is_400(probe_server):
    response = httpx.get(f"{_probe_url(probe_server)}/probe")
    assert response.status_code == 400
    assert "'target' parameter must be specified once" in response.text


def test_probe_returns_metrics(moonraker, probe_server):
    response = httpx.get(
        f"{_probe_url(probe_server)}/probe",
        params=[("target", moonraker.target), ("modules", "process_stats"),
                ("modules", "printer_objects")],
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "klipper_moonraker_memory_kb 24740.0" in response.text
    assert 'klipper_temperature_sensor_temperature{sensor="Chamber"} 38.5' in response.text
    assert 'klipper_mcu_freq{mcu="rpi"} 5e+07' in response.text


def test_probe_passes_api_key_header(probe_server):
    moonraker = _start(FakeMoonrakerServer(("127.0.0.1", 0), api_key="s3cret"))
    try:
        url = f"{_probe_url(probe_server)}/probe"
        params = {"target": moonraker.target, "modules": "system_info"}

        denied = httpx.get(url, params=params)
        allowed = httpx.get(url, params=params, headers={"Authorization": "APIKEY s3cret"})
    finally:
        moonraker.shutdown()
        moonraker.server_close()

    assert denied.status_code == 200
    assert "klipper_system_cpu_count" not in denied.text
    assert "klipper_system_cpu_count 4.0" in allowed.text


def test_probe_partial_failure_still_200(moonraker, probe_server):
    moonraker.failing.add("/server/files/directory")
    response = httpx.get(
        f"{_probe_url(probe_server)}/probe",
        params=[("target", moonraker.target), ("modules", "directory_info"),
                ("modules", "system_info")],
    )

    assert response.status_code == 200
    assert "klipper_system_cpu_count 4.0" in response.text
    assert "klipper_disk_usage" not in response.text


def test_probe_unreachable_target_is_empty_200(probe_server):
    # Port 9 (discard) is almost never open locally
    response = httpx.get(
        f"{_probe_url(probe_server)}/probe",
        params={"target": "127.0.0.1:9", "modules": "system_info"},
    )
    assert response.status_code == 200
    assert response.text == ""


def test_metrics_endpoint_serves_process_metrics(probe_server):
    response = httpx.get(f"{_probe_url(probe_server)}/metrics")
    assert response.status_code == 200
    assert "python_info" in response.text


def test_unknown_path_is_404(probe_server):
    assert httpx.get(f"{_probe_url(probe_server)}/nope").status_code == 404


def test_fake_server_counts_discovery(moonraker, probe_server):
    url = f"{_probe_url(probe_server)}/probe"
    params = {"target": moonraker.target, "modules": "printer_objects"}

    httpx.get(url, params=params)
    httpx.get(url, params=params)

    assert moonraker.hits["/printer/objects/list"] == 1
    assert moonraker.hits["/printer/objects/query"] == 2
    assert "mcu%20rpi=last_stats" in moonraker.last_query["/printer/objects/query"]


@pytest.mark.parametrize("value,expected", [
    ("10", 10.0), ("2.5", 2.5), (None, None), ("", None), ("soon", None), ("0", None),
])
def test_parse_scrape_timeout(value, expected):
    assert parse_scrape_timeout(value) == expected


def test_probe_gives_up_at_scrape_timeout(moonraker, probe_server):
    for path in ("/machine/proc_stats", "/machine/system_info", "/server/files/directory",
                 "/server/job_queue/status", "/server/history/totals", "/server/history/list"):
        moonraker.delays[path] = 1.5

    started = time.monotonic()
    response = httpx.get(
        f"{_probe_url(probe_server)}/probe",
        params=[("target", moonraker.target), ("modules", "process_stats"),
                ("modules", "network_stats"), ("modules", "system_info"),
                ("modules", "directory_info"), ("modules", "job_queue"), ("modules", "history")],
        headers={"X-Prometheus-Scrape-Timeout-Seconds": "2"},
        timeout=15.0,
    )
    elapsed = time.monotonic() - started

    assert response.status_code == 503
    assert elapsed < 5.0
    assert moonraker.hits["/server/files/directory"] == 0


def test_probe_within_scrape_timeout_is_200(moonraker, probe_server):
    response = httpx.get(
        f"{_probe_url(probe_server)}/probe",
        params={"target": moonraker.target, "modules": "system_info"},
        headers={"X-Prometheus-Scrape-Timeout-Seconds": "10"},
    )
    assert response.status_code == 200
    assert "klipper_system_cpu_count 4.0" in response.text
