"""Prometheus exporter for Klipper printers, polling the Moonraker API."""

__version__ = "0.4.0"
