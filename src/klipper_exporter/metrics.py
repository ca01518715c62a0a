"""
Core metric definitions for the Klipper exporter.

A scrape produces a flat list of Samples. Each one is a single named,
labeled reading taken from one of Moonraker's HTTP endpoints. The
exposition layer turns them into Prometheus text; nothing here knows
about the wire format.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

GAUGE = "gauge"
COUNTER = "counter"

# Every module the probe endpoint understands, in processing order.
# process_stats and network_stats are backed by the same upstream call.
MODULES: Tuple[str, ...] = (
    "process_stats",
    "network_stats",
    "system_info",
    "directory_info",
    "job_queue",
    "history",
    "printer_objects",
    "temperature",
    "spoolman",
)

DEFAULT_MODULES: Tuple[str, ...] = ("process_stats", "job_queue", "system_info")


@dataclass(frozen=True)
class Sample:
    """One point-in-time reading from a printer."""

    name: str
    value: float
    help_text: str = ""
    kind: str = GAUGE
    labels: Tuple[Tuple[str, str], ...] = ()

    @property
    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)

    @property
    def identity(self) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        return self.name, self.labels


def gauge(name: str, help_text: str, value: float, **labels: str) -> Sample:
    return Sample(
        name=name,
        value=float(value),
        help_text=help_text,
        kind=GAUGE,
        labels=tuple(labels.items()),
    )


def counter(name: str, help_text: str, value: float, **labels: str) -> Sample:
    return Sample(
        name=name,
        value=float(value),
        help_text=help_text,
        kind=COUNTER,
        labels=tuple(labels.items()),
    )


@dataclass
class Snapshot:
    """All samples from one scrape of one target, in emission order."""

    target: str
    modules: List[str] = field(default_factory=list)
    samples: List[Sample] = field(default_factory=list)
    failed_modules: List[str] = field(default_factory=list)

    def value(self, name: str, **labels: str) -> float:
        """Value of the first sample matching name and labels. Raises KeyError."""
        wanted = tuple(labels.items())
        for s in self.samples:
            if s.name == name and (not wanted or s.labels == wanted):
                return s.value
        raise KeyError(name)

    def summary(self) -> dict:
        """Return a plain dict for display or logging."""
        return {
            "target": self.target,
            "modules": list(self.modules),
            "samples": len(self.samples),
            "failed_modules": list(self.failed_modules),
        }
