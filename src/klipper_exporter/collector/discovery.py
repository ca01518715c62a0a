"""
Discovery of user-named printer objects, remembered per target.

Klipper only reports objects like "temperature_sensor chamber" when the
query names them, so before the first printer_objects scrape of a target we
list every object and keep the ones PREFIX_RULES recognise. The result is
cached for the life of the process. New sensors show up after a restart,
not before.

Discovery is serialized per target: concurrent first scrapes of the same
printer share one /printer/objects/list call. A failed discovery caches
nothing, so the next scrape tries again.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from klipper_exporter.collector.client import MoonrakerClient
from klipper_exporter.collector.printer_objects import Entity, group_entities

log = logging.getLogger(__name__)

CustomEntities = Dict[str, List[Entity]]


def discover(client: MoonrakerClient) -> CustomEntities:
    """List the printer's objects and group the user-named ones. Raises FetchError."""
    names = client.printer_object_names().objects
    entities = group_entities(names)
    found = {group: [e.name for e in members] for group, members in entities.items() if members}
    log.info("Found custom objects on %s: %s", client.target, found)
    return entities


class CustomEntityCache:

    def __init__(self):
        self._entries: Dict[str, CustomEntities] = {}
        self._locks: Dict[str, threading.Lock] = {}
        # Guards _locks only; discovery itself runs under the per-target lock
        self._locks_guard = threading.Lock()

    def _lock_for(self, target: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(target)
            if lock is None:
                lock = self._locks[target] = threading.Lock()
            return lock

    def get(self, target: str) -> Optional[CustomEntities]:
        return self._entries.get(target)

    def get_or_discover(
        self,
        target: str,
        discover_fn: Callable[[], CustomEntities],
    ) -> CustomEntities:
        """Cached entities for target, running discover_fn once if there are none yet."""
        entities = self._entries.get(target)
        if entities is not None:
            return entities

        with self._lock_for(target):
            # Another thread may have finished discovery while we waited
            entities = self._entries.get(target)
            if entities is None:
                entities = discover_fn()
                self._entries[target] = entities
            return entities

    def __contains__(self, target: str) -> bool:
        return target in self._entries

    def __len__(self) -> int:
        return len(self._entries)
