"""
Typed views of Moonraker's JSON responses.

Moonraker wraps everything in {"result": ...}; the from_result constructors
take that inner object. Decoding is deliberately forgiving: a missing or
mistyped field turns into its zero value (0.0, "", empty list/dict) so one
optional field never costs us a whole module.

https://moonraker.readthedocs.io/en/latest/web_api/
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def as_float(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def as_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


# -- /machine/proc_stats --


@dataclass
class MoonrakerProcStat:
    time: float = 0.0
    cpu_usage: float = 0.0
    memory: float = 0.0
    mem_units: str = ""

    @classmethod
    def from_result(cls, raw: Any) -> "MoonrakerProcStat":
        raw = as_dict(raw)
        return cls(
            time=as_float(raw.get("time")),
            cpu_usage=as_float(raw.get("cpu_usage")),
            memory=as_float(raw.get("memory")),
            mem_units=as_str(raw.get("mem_units")),
        )


@dataclass
class NetworkStats:
    rx_bytes: float = 0.0
    tx_bytes: float = 0.0
    rx_packets: float = 0.0
    tx_packets: float = 0.0
    rx_errs: float = 0.0
    tx_errs: float = 0.0
    rx_drop: float = 0.0
    tx_drop: float = 0.0
    bandwidth: float = 0.0

    @classmethod
    def from_result(cls, raw: Any) -> "NetworkStats":
        raw = as_dict(raw)
        return cls(**{name: as_float(raw.get(name)) for name in cls.__dataclass_fields__})


@dataclass
class SystemMemory:
    total: float = 0.0
    available: float = 0.0
    used: float = 0.0


@dataclass
class ProcStats:
    moonraker_stats: List[MoonrakerProcStat] = field(default_factory=list)
    cpu_temp: float = 0.0
    network: Dict[str, NetworkStats] = field(default_factory=dict)
    system_cpu: float = 0.0
    system_memory: SystemMemory = field(default_factory=SystemMemory)
    system_uptime: float = 0.0
    websocket_connections: float = 0.0

    @property
    def latest(self) -> Optional[MoonrakerProcStat]:
        """Most recent process sample, or None when Moonraker has none yet."""
        return self.moonraker_stats[-1] if self.moonraker_stats else None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "ProcStats":
        memory = as_dict(result.get("system_memory"))
        return cls(
            moonraker_stats=[
                MoonrakerProcStat.from_result(s) for s in as_list(result.get("moonraker_stats"))
            ],
            cpu_temp=as_float(result.get("cpu_temp")),
            network={
                name: NetworkStats.from_result(stats)
                for name, stats in as_dict(result.get("network")).items()
            },
            system_cpu=as_float(as_dict(result.get("system_cpu_usage")).get("cpu")),
            system_memory=SystemMemory(
                total=as_float(memory.get("total")),
                available=as_float(memory.get("available")),
                used=as_float(memory.get("used")),
            ),
            system_uptime=as_float(result.get("system_uptime")),
            websocket_connections=as_float(result.get("websocket_connections")),
        )


# -- /server/files/directory --


@dataclass
class DirectoryInfo:
    disk_total: float = 0.0
    disk_used: float = 0.0
    disk_free: float = 0.0

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "DirectoryInfo":
        usage = as_dict(result.get("disk_usage"))
        return cls(
            disk_total=as_float(usage.get("total")),
            disk_used=as_float(usage.get("used")),
            disk_free=as_float(usage.get("free")),
        )


# -- /server/job_queue/status --


@dataclass
class JobQueue:
    queued_jobs: List[Dict[str, Any]] = field(default_factory=list)
    queue_state: str = ""

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "JobQueue":
        return cls(
            queued_jobs=[as_dict(j) for j in as_list(result.get("queued_jobs"))],
            queue_state=as_str(result.get("queue_state")),
        )


# -- /server/history/totals and /server/history/list --


@dataclass
class HistoryTotals:
    total_jobs: float = 0.0
    total_time: float = 0.0
    total_print_time: float = 0.0
    total_filament_used: float = 0.0
    longest_job: float = 0.0
    longest_print: float = 0.0

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "HistoryTotals":
        totals = as_dict(result.get("job_totals"))
        return cls(**{name: as_float(totals.get(name)) for name in cls.__dataclass_fields__})


JOB_IN_PROGRESS = "in_progress"


@dataclass
class HistoryJob:
    status: str = ""
    total_duration: float = 0.0
    object_height: float = 0.0
    first_layer_height: float = 0.0
    layer_height: float = 0.0

    @property
    def in_progress(self) -> bool:
        return self.status == JOB_IN_PROGRESS

    @classmethod
    def from_result(cls, raw: Any) -> "HistoryJob":
        raw = as_dict(raw)
        metadata = as_dict(raw.get("metadata"))
        return cls(
            status=as_str(raw.get("status")),
            total_duration=as_float(raw.get("total_duration")),
            object_height=as_float(metadata.get("object_height")),
            first_layer_height=as_float(metadata.get("first_layer_height")),
            layer_height=as_float(metadata.get("layer_height")),
        )


@dataclass
class HistoryList:
    jobs: List[HistoryJob] = field(default_factory=list)

    @property
    def latest(self) -> Optional[HistoryJob]:
        return self.jobs[0] if self.jobs else None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "HistoryList":
        return cls(jobs=[HistoryJob.from_result(j) for j in as_list(result.get("jobs"))])


# -- /machine/system_info --


@dataclass
class SystemInfo:
    cpu_count: float = 0.0
    total_memory: float = 0.0
    memory_units: str = ""

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "SystemInfo":
        cpu_info = as_dict(as_dict(result.get("system_info")).get("cpu_info"))
        return cls(
            cpu_count=as_float(cpu_info.get("cpu_count")),
            total_memory=as_float(cpu_info.get("total_memory")),
            memory_units=as_str(cpu_info.get("memory_units")),
        )


# -- /server/temperature_store --


@dataclass
class TemperatureStore:
    """Cached readings per object, e.g. {"extruder": {"temperatures": [...]}}."""

    objects: Dict[str, Dict[str, List[Any]]] = field(default_factory=dict)

    def latest(self) -> Dict[str, Dict[str, float]]:
        """Last reading of every non-empty numeric series."""
        out: Dict[str, Dict[str, float]] = {}
        for name, series in self.objects.items():
            readings = {}
            for field_name, values in series.items():
                if values and isinstance(values[-1], (int, float)) and not isinstance(values[-1], bool):
                    readings[field_name] = float(values[-1])
            if readings:
                out[name] = readings
        return out

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "TemperatureStore":
        objects = {}
        for name, series in result.items():
            fields = {k: as_list(v) for k, v in as_dict(series).items()}
            objects[name] = fields
        return cls(objects=objects)


# -- /printer/objects/list --


@dataclass
class PrinterObjectList:
    objects: List[str] = field(default_factory=list)

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "PrinterObjectList":
        return cls(objects=[o for o in as_list(result.get("objects")) if isinstance(o, str)])


# -- /server/spoolman/status --


@dataclass
class SpoolmanStatus:
    connected: bool = False
    spool_id: Optional[int] = None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "SpoolmanStatus":
        spool_id = result.get("spool_id")
        if isinstance(spool_id, bool) or not isinstance(spool_id, int):
            spool_id = None
        return cls(
            connected=as_bool(result.get("spoolman_connected")),
            spool_id=spool_id,
        )
