"""Tests for custom object discovery and the per-target cache."""

import threading
import time

import httpx
import pytest

from klipper_exporter.collector.client import MoonrakerClient
from klipper_exporter.collector.discovery import CustomEntityCache, discover
from klipper_exporter.collector.errors import TransportError
from klipper_exporter.collector.printer_objects import MICROCONTROLLER, TEMPERATURE_SENSOR
from klipper_exporter.mock import payloads


def test_discover_groups_object_names():
    def handler(request):
        assert request.url.path == "/printer/objects/list"
        return httpx.Response(200, json=payloads.objects_list())

    with MoonrakerClient("printer:7125", transport=httpx.MockTransport(handler)) as client:
        entities = discover(client)

    assert [e.name for e in entities[TEMPERATURE_SENSOR]] == ["Chamber"]
    assert [e.name for e in entities[MICROCONTROLLER]] == ["mcu", "rpi"]


def test_cache_discovers_once_per_target():
    cache = CustomEntityCache()
    calls = []

    def fake_discover():
        calls.append(1)
        return {TEMPERATURE_SENSOR: []}

    first = cache.get_or_discover("a:7125", fake_discover)
    second = cache.get_or_discover("a:7125", fake_discover)

    assert first is second
    assert len(calls) == 1
    assert "a:7125" in cache


def test_cache_keeps_targets_apart():
    cache = CustomEntityCache()
    cache.get_or_discover("a:7125", lambda: {"x": []})
    cache.get_or_discover("b:7125", lambda: {"y": []})

    assert cache.get("a:7125") == {"x": []}
    assert cache.get("b:7125") == {"y": []}
    assert len(cache) == 2


def test_failed_discovery_is_not_cached():
    cache = CustomEntityCache()

    def broken():
        raise TransportError("http://a:7125/printer/objects/list", "connection refused")

    with pytest.raises(TransportError):
        cache.get_or_discover("a:7125", broken)
    assert "a:7125" not in cache

    assert cache.get_or_discover("a:7125", lambda: {"x": []}) == {"x": []}


def test_concurrent_first_access_discovers_once():
    cache = CustomEntityCache()
    calls = []
    calls_lock = threading.Lock()
    start = threading.Barrier(8)
    results = []

    def slow_discover():
        with calls_lock:
            calls.append(1)
        time.sleep(0.1)
        return {TEMPERATURE_SENSOR: []}

    def worker():
        start.wait()
        results.append(cache.get_or_discover("a:7125", slow_discover))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 8
    assert all(r is results[0] for r in results)
