"""Tests for label and metric-name sanitizing."""

import re

from klipper_exporter.collector.labels import metric_part, sanitize

_VALID = re.compile(r"^[A-Za-z0-9_]*$")


def test_hyphens_become_underscores():
    assert sanitize("wlan-0") == "wlan_0"


def test_punctuation_and_spaces_are_dropped():
    assert sanitize("Chamber-Sensor #1") == "Chamber_Sensor1"
    assert sanitize("my fan (rear)") == "myfanrear"


def test_alphanumerics_and_underscores_kept_verbatim():
    assert sanitize("Extruder_2") == "Extruder_2"


def test_empty_string():
    assert sanitize("") == ""


def test_output_always_in_identifier_alphabet():
    for raw in ["a-b.c", "üñï-çødé", "x!@#$%^&*()y", "tab\tand\nnewline", "--", "sensor/1"]:
        assert _VALID.match(sanitize(raw)), raw


def test_metric_part_keeps_word_boundaries():
    assert metric_part("temperature_sensor chamber") == "temperature_sensor_chamber"
    assert metric_part("temperature_fan my-fan") == "temperature_fan_my_fan"
