"""
Bridge from Samples to the Prometheus text format via prometheus_client.

Metric identities are only known after a live scrape, so ProbeCollector
describes nothing up front and the registry accepts whatever collect()
yields.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from klipper_exporter.metrics import COUNTER, Sample


class ProbeCollector(Collector):
    """Serves a fixed list of samples, grouped into one family per metric name."""

    def __init__(self, samples: Iterable[Sample]):
        self._samples = list(samples)

    def describe(self) -> List[Metric]:
        return []

    def collect(self) -> Iterator[Metric]:
        families: Dict[str, Metric] = {}
        for sample in self._samples:
            family = families.get(sample.name)
            if family is None:
                doc = sample.help_text or sample.name
                if sample.kind == COUNTER:
                    family = CounterMetricFamily(sample.name, doc)
                else:
                    family = GaugeMetricFamily(sample.name, doc)
                families[sample.name] = family

            sample_name = family.name + "_total" if family.type == "counter" else family.name
            family.add_sample(sample_name, sample.label_dict, sample.value)

        yield from families.values()


def render(samples: Iterable[Sample]) -> bytes:
    """Prometheus text exposition of samples."""
    registry = CollectorRegistry()
    registry.register(ProbeCollector(samples))
    return generate_latest(registry)
