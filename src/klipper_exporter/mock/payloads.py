"""
Representative Moonraker responses for a small Voron-style printer.

Shapes follow the Moonraker web API docs. Used by the fake server and the
tests; each function returns a fresh copy so callers can mutate freely.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

_PROC_STATS = {
    "result": {
        "moonraker_stats": [
            {"time": 1626612666.850755, "cpu_usage": 2.66, "memory": 24732, "mem_units": "kB"},
            {"time": 1626612667.849099, "cpu_usage": 2.32, "memory": 24740, "mem_units": "kB"},
        ],
        "throttled_state": {"bits": 0, "flags": []},
        "cpu_temp": 45.622,
        "network": {
            "lo": {
                "rx_bytes": 113430, "tx_bytes": 113430, "rx_packets": 2158,
                "tx_packets": 2158, "rx_errs": 0, "tx_errs": 0,
                "rx_drop": 0, "tx_drop": 0, "bandwidth": 0.0,
            },
            "wlan-0": {
                "rx_bytes": 4247766, "tx_bytes": 1339237, "rx_packets": 6923,
                "tx_packets": 4815, "rx_errs": 0, "tx_errs": 0,
                "rx_drop": 12, "tx_drop": 0, "bandwidth": 2430.4,
            },
        },
        "system_cpu_usage": {"cpu": 2.53, "cpu0": 3.03, "cpu1": 5.1, "cpu2": 1.02, "cpu3": 1.0},
        "system_memory": {"total": 8054360, "available": 7078872, "used": 975488},
        "system_uptime": 2876970.38,
        "websocket_connections": 4,
    }
}

_DIRECTORY = {
    "result": {
        "dirs": [],
        "files": [{"filename": "benchy.gcode", "modified": 1615768477.5, "size": 189713016}],
        "disk_usage": {"total": 57276043264, "used": 2465947648, "free": 52471566336},
        "root_info": {"name": "gcodes", "permissions": "rw"},
    }
}

_JOB_QUEUE = {
    "result": {
        "queued_jobs": [
            {"filename": "job1.gcode", "job_id": "0000000066D99C90", "time_added": 1636151050.7,
             "time_in_queue": 21.9},
            {"filename": "job2.gcode", "job_id": "0000000066D991F0", "time_added": 1636151050.7,
             "time_in_queue": 21.9},
        ],
        "queue_state": "ready",
    }
}

_HISTORY_TOTALS = {
    "result": {
        "job_totals": {
            "total_jobs": 3,
            "total_time": 11748.077,
            "total_print_time": 11348.2,
            "total_filament_used": 11615.7,
            "longest_job": 11665.191,
            "longest_print": 11348.2,
        }
    }
}

_HISTORY_LATEST = {
    "result": {
        "count": 1,
        "jobs": [
            {
                "job_id": "000001",
                "exists": True,
                "end_time": None,
                "filament_used": 4.3,
                "filename": "benchy.gcode",
                "metadata": {
                    "object_height": 48.0,
                    "first_layer_height": 0.25,
                    "layer_height": 0.2,
                },
                "print_duration": 950.2,
                "status": "in_progress",
                "start_time": 1615764496.6,
                "total_duration": 1002.5,
            }
        ],
    }
}

_SYSTEM_INFO = {
    "result": {
        "system_info": {
            "cpu_info": {
                "cpu_count": 4,
                "bits": "32bit",
                "processor": "armv7l",
                "total_memory": 8054360,
                "memory_units": "kB",
            },
        }
    }
}

_TEMPERATURE_STORE = {
    "result": {
        "extruder": {
            "temperatures": [21.05, 21.12, 21.1],
            "targets": [0, 0, 0],
            "powers": [0, 0, 0],
        },
        "temperature_fan my_fan": {
            "temperatures": [21.05, 21.12, 21.1],
            "targets": [0, 0, 0],
            "speeds": [0, 0, 0],
        },
        "temperature_sensor chamber": {
            "temperatures": [21.05, 21.12, 21.1],
        },
    }
}

_OBJECTS_LIST = {
    "result": {
        "objects": [
            "webhooks",
            "configfile",
            "mcu",
            "mcu rpi",
            "gcode_move",
            "print_stats",
            "virtual_sdcard",
            "display_status",
            "idle_timeout",
            "toolhead",
            "extruder",
            "heater_bed",
            "fan",
            "temperature_sensor Chamber",
            "temperature_fan exhaust",
            "output_pin caselight",
            "fan_generic nevermore",
            "controller_fan electronics",
            "filament_switch_sensor Extruder",
            "filament_motion_sensor runout",
        ]
    }
}

_OBJECTS_QUERY = {
    "result": {
        "eventtime": 578243.57824499,
        "status": {
            "gcode_move": {
                "speed_factor": 1.0,
                "speed": 1500.0,
                "extrude_factor": 1.0,
                "gcode_position": [120.5, 98.25, 4.2, 1250.3],
            },
            "toolhead": {
                "print_time": 4123.5,
                "estimated_print_time": 4124.1,
                "max_velocity": 300.0,
                "max_accel": 3000.0,
                "max_accel_to_decel": 1500.0,
                "square_corner_velocity": 5.0,
            },
            "extruder": {
                "temperature": 245.1,
                "target": 245.0,
                "power": 0.42,
                "pressure_advance": 0.045,
                "smooth_time": 0.04,
            },
            "heater_bed": {"temperature": 100.2, "target": 100.0, "power": 0.31},
            "fan": {"speed": 0.6, "rpm": None},
            "idle_timeout": {"state": "Printing", "printing_time": 1002.5},
            "virtual_sdcard": {"progress": 0.31, "is_active": True, "file_position": 58807021},
            "print_stats": {"total_duration": 1002.5, "print_duration": 950.2, "filament_used": 4300.1},
            "display_status": {"progress": 0.3},
            "mcu": {
                "last_stats": {
                    "mcu_awake": 0.011, "mcu_task_avg": 0.000012, "mcu_task_stddev": 0.000009,
                    "bytes_write": 1890411, "bytes_read": 6048822, "bytes_retransmit": 9,
                    "bytes_invalid": 0, "send_seq": 75834, "receive_seq": 75834,
                    "retransmit_seq": 2, "srtt": 0.001, "rttvar": 0.0, "rto": 0.025,
                    "ready_bytes": 0, "stalled_bytes": 0, "freq": 180000215,
                }
            },
            "mcu rpi": {
                "last_stats": {
                    "mcu_awake": 0.002, "bytes_write": 44210, "bytes_read": 120554,
                    "freq": 50000000,
                }
            },
            "temperature_sensor Chamber": {
                "temperature": 38.5, "measured_min_temp": 19.8, "measured_max_temp": 41.0,
            },
            "temperature_fan exhaust": {"speed": 0.5, "temperature": 45.0, "target": 40.0},
            "output_pin caselight": {"value": 1.0},
            "fan_generic nevermore": {"speed": 1.0, "rpm": 2800.0},
            "controller_fan electronics": {"speed": 0.8, "rpm": None},
            "filament_switch_sensor Extruder": {"filament_detected": True, "enabled": True},
            "filament_motion_sensor runout": {"filament_detected": False, "enabled": False},
        },
    }
}

_SPOOLMAN_STATUS = {
    "result": {
        "spoolman_connected": True,
        "pending_reports": [{"spool_id": 1, "filament_used": 10}],
        "spool_id": 2,
    }
}


def proc_stats() -> Dict[str, Any]:
    return copy.deepcopy(_PROC_STATS)


def directory() -> Dict[str, Any]:
    return copy.deepcopy(_DIRECTORY)


def job_queue() -> Dict[str, Any]:
    return copy.deepcopy(_JOB_QUEUE)


def history_totals() -> Dict[str, Any]:
    return copy.deepcopy(_HISTORY_TOTALS)


def history_latest() -> Dict[str, Any]:
    return copy.deepcopy(_HISTORY_LATEST)


def system_info() -> Dict[str, Any]:
    return copy.deepcopy(_SYSTEM_INFO)


def temperature_store() -> Dict[str, Any]:
    return copy.deepcopy(_TEMPERATURE_STORE)


def objects_list() -> Dict[str, Any]:
    return copy.deepcopy(_OBJECTS_LIST)


def objects_query() -> Dict[str, Any]:
    return copy.deepcopy(_OBJECTS_QUERY)


def spoolman_status() -> Dict[str, Any]:
    return copy.deepcopy(_SPOOLMAN_STATUS)


# Path (without query string) -> payload factory
ROUTES = {
    "/machine/proc_stats": proc_stats,
    "/server/files/directory": directory,
    "/server/job_queue/status": job_queue,
    "/server/history/totals": history_totals,
    "/server/history/list": history_latest,
    "/machine/system_info": system_info,
    "/server/temperature_store": temperature_store,
    "/printer/objects/list": objects_list,
    "/printer/objects/query": objects_query,
    "/server/spoolman/status": spoolman_status,
}
