"""Tests for the one-shot Rich table."""

from rich.console import Console

from klipper_exporter.dashboard.terminal import build_table, print_snapshot
from klipper_exporter.metrics import Snapshot, gauge


def _snapshot() -> Snapshot:
    return Snapshot(
        target="printer.local:7125",
        modules=["system_info", "printer_objects"],
        samples=[
            gauge("klipper_system_cpu_count", "CPUs.", 4),
            gauge("klipper_temperature_sensor_temperature", "Temp.", 38.5, sensor="Chamber"),
        ],
        failed_modules=["printer_objects"],
    )


def test_table_has_row_per_sample():
    table = build_table(_snapshot())
    assert table.row_count == 2


def test_print_snapshot_shows_values_and_failures():
    console = Console(record=True, width=160)
    print_snapshot(_snapshot(), console=console)
    text = console.export_text()

    assert "klipper_system_cpu_count" in text
    assert 'sensor="Chamber"' in text
    assert "38.5" in text
    assert "FAILED" in text
    assert "printer_objects" in text


def test_print_empty_snapshot():
    console = Console(record=True, width=120)
    print_snapshot(Snapshot(target="down.local:7125"), console=console)
    assert "No metrics collected from down.local:7125" in console.export_text()
