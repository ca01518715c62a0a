"""
The snapshot collector: one scrape of one printer.

Given a target, the requested modules and an API key, works out which
Moonraker endpoints to hit, fetches them one after another and maps the
results to Samples. Failures are contained per fetch: a module whose
endpoint is down is logged and skipped, the rest of the scrape carries on.

The only state shared between scrapes is the CustomEntityCache, which
remembers each printer's user-named objects.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import httpx

from klipper_exporter.collector.client import DEFAULT_TIMEOUT_SECONDS, MoonrakerClient
from klipper_exporter.collector.discovery import CustomEntityCache, discover
from klipper_exporter.collector.errors import CollectionCancelled, FetchError
from klipper_exporter.collector.modules import (
    emit_current_print,
    emit_directory_info,
    emit_dynamic_objects,
    emit_fixed_objects,
    emit_history_totals,
    emit_job_queue,
    emit_network_stats,
    emit_process_stats,
    emit_spoolman,
    emit_system_info,
    emit_temperature_store,
)
from klipper_exporter.collector.printer_objects import build_query, classify
from klipper_exporter.collector.responses import ProcStats
from klipper_exporter.metrics import MODULES, Sample, Snapshot

log = logging.getLogger(__name__)


class _Scrape:
    """Per-scrape state: the client plus fetches shared between modules."""

    def __init__(self, client: MoonrakerClient):
        self.client = client
        self._proc_stats: Optional[ProcStats] = None
        self._proc_stats_error: Optional[FetchError] = None

    def proc_stats(self) -> ProcStats:
        # process_stats and network_stats read the same response; fetch it once
        if self._proc_stats_error is not None:
            raise self._proc_stats_error
        if self._proc_stats is None:
            try:
                self._proc_stats = self.client.process_stats()
            except FetchError as e:
                self._proc_stats_error = e
                raise
        return self._proc_stats


Part = Callable[[_Scrape], List[Sample]]


def normalize_modules(modules: Iterable[str]) -> List[str]:
    """Known modules in processing order, duplicates dropped, unknown names ignored."""
    requested: Set[str] = set(modules)
    unknown = requested.difference(MODULES)
    if unknown:
        log.debug("Ignoring unknown modules: %s", sorted(unknown))
    return [m for m in MODULES if m in requested]


class SnapshotCollector:

    def __init__(
        self,
        cache: Optional[CustomEntityCache] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.cache = cache if cache is not None else CustomEntityCache()
        self._timeout = timeout_seconds
        self._transport = transport

        self._parts: Dict[str, Tuple[Part, ...]] = {
            "process_stats": (self._process_stats,),
            "network_stats": (self._network_stats,),
            "system_info": (self._system_info,),
            "directory_info": (self._directory_info,),
            "job_queue": (self._job_queue,),
            "history": (self._history_totals, self._current_print),
            "printer_objects": (self._printer_objects,),
            "temperature": (self._temperature,),
            "spoolman": (self._spoolman,),
        }

    def collect(
        self,
        target: str,
        modules: Iterable[str],
        api_key: str = "",
        cancel: Optional[threading.Event] = None,
    ) -> List[Sample]:
        """Samples for one scrape. Only raises CollectionCancelled."""
        return self.snapshot(target, modules, api_key, cancel).samples

    def snapshot(
        self,
        target: str,
        modules: Iterable[str],
        api_key: str = "",
        cancel: Optional[threading.Event] = None,
    ) -> Snapshot:
        requested = normalize_modules(modules)
        snap = Snapshot(target=target, modules=requested)
        if not requested:
            return snap

        seen = set()
        client = MoonrakerClient(
            target,
            api_key=api_key,
            timeout_seconds=self._timeout,
            transport=self._transport,
        )
        with client:
            scrape = _Scrape(client)
            for module in requested:
                failed = False
                for part in self._parts[module]:
                    if cancel is not None and cancel.is_set():
                        raise CollectionCancelled(f"scrape of {target} cancelled during {module}")
                    try:
                        samples = part(scrape)
                    except FetchError as e:
                        log.error("Unable to collect %s metrics from %s: %s", module, target, e)
                        failed = True
                        continue

                    for sample in samples:
                        # legacy temperature names can overlap printer_objects; first one wins
                        if sample.identity in seen:
                            log.debug("Dropping duplicate sample %s from %s", sample.name, module)
                            continue
                        seen.add(sample.identity)
                        snap.samples.append(sample)

                if failed:
                    snap.failed_modules.append(module)

        log.debug("Collected %s", snap.summary())
        return snap

    # -- Module parts --

    def _process_stats(self, scrape: _Scrape) -> List[Sample]:
        return emit_process_stats(scrape.proc_stats())

    def _network_stats(self, scrape: _Scrape) -> List[Sample]:
        return emit_network_stats(scrape.proc_stats())

    def _system_info(self, scrape: _Scrape) -> List[Sample]:
        return emit_system_info(scrape.client.system_info())

    def _directory_info(self, scrape: _Scrape) -> List[Sample]:
        return emit_directory_info(scrape.client.directory_info())

    def _job_queue(self, scrape: _Scrape) -> List[Sample]:
        return emit_job_queue(scrape.client.job_queue())

    def _history_totals(self, scrape: _Scrape) -> List[Sample]:
        return emit_history_totals(scrape.client.history_totals())

    def _current_print(self, scrape: _Scrape) -> List[Sample]:
        return emit_current_print(scrape.client.history_latest())

    def _printer_objects(self, scrape: _Scrape) -> List[Sample]:
        client = scrape.client
        entities = self.cache.get_or_discover(client.target, lambda: discover(client))
        status = client.printer_objects(build_query(entities))
        fixed, groups = classify(status)
        return emit_fixed_objects(fixed) + emit_dynamic_objects(groups)

    def _temperature(self, scrape: _Scrape) -> List[Sample]:
        return emit_temperature_store(scrape.client.temperature_store())

    def _spoolman(self, scrape: _Scrape) -> List[Sample]:
        return emit_spoolman(scrape.client.spoolman_status())
