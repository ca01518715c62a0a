"""Tests for rendering samples as Prometheus text."""

from prometheus_client import CollectorRegistry

from klipper_exporter.exposition import ProbeCollector, render
from klipper_exporter.metrics import counter, gauge


def test_render_gauges_with_help_and_labels():
    text = render([
        gauge("klipper_system_uptime", "Klipper system uptime.", 123.5),
        gauge("klipper_network_rx_bytes", "Klipper network received bytes.", 10, interface="eth0"),
        gauge("klipper_network_rx_bytes", "Klipper network received bytes.", 20, interface="wlan0"),
    ]).decode()

    assert "# HELP klipper_system_uptime Klipper system uptime." in text
    assert "# TYPE klipper_system_uptime gauge" in text
    assert "klipper_system_uptime 123.5" in text
    assert 'klipper_network_rx_bytes{interface="eth0"} 10.0' in text
    assert 'klipper_network_rx_bytes{interface="wlan0"} 20.0' in text
    assert text.count("# TYPE klipper_network_rx_bytes gauge") == 1


def test_render_counter():
    text = render([counter("klipper_scrapes", "Scrapes served.", 3)]).decode()
    # newer prometheus_client releases put the _total suffix on the TYPE line too
    type_lines = [line for line in text.splitlines() if line.startswith("# TYPE")]
    assert type_lines in (
        ["# TYPE klipper_scrapes counter"],
        ["# TYPE klipper_scrapes_total counter"],
    )
    assert "klipper_scrapes_total 3.0" in text


def test_render_nothing():
    assert render([]) == b""


def test_collector_describes_nothing():
    collector = ProbeCollector([gauge("klipper_fan_speed", "Fan.", 0.5)])
    assert collector.describe() == []

    registry = CollectorRegistry()
    registry.register(collector)
    assert registry.get_sample_value("klipper_fan_speed") == 0.5


def test_missing_help_falls_back_to_name():
    text = render([gauge("klipper_thing", "", 1)]).decode()
    assert "# HELP klipper_thing klipper_thing" in text
