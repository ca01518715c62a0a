"""
Turns printer-supplied names (sensor, fan, interface, mcu names) into
strings that are safe as Prometheus label values and metric name parts.
"""

from __future__ import annotations

import re

# Anything outside the Prometheus identifier alphabet.
_INVALID_RE = re.compile(r"[^A-Za-z0-9_]+")


def sanitize(raw_name: str) -> str:
    """Hyphens become underscores, every other invalid character is dropped.

    >>> sanitize("chamber-sensor #1")
    'chamber_sensor1'
    """
    return _INVALID_RE.sub("", raw_name.replace("-", "_"))


def metric_part(raw_name: str) -> str:
    """Like sanitize, but keeps word boundaries by mapping spaces to underscores."""
    return sanitize(raw_name.replace(" ", "_"))
