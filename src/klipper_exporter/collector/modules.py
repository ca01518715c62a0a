"""
Metric tables: typed Moonraker responses in, Samples out.

One emit function per module. Names follow klipper_<area>_<field> and must
stay stable; existing dashboards and alerts depend on them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from klipper_exporter.collector.labels import metric_part, sanitize
from klipper_exporter.collector.printer_objects import (
    CONTROLLER_FAN,
    FILAMENT_SENSOR,
    GENERIC_FAN,
    MICROCONTROLLER,
    OUTPUT_PIN,
    TEMPERATURE_FAN,
    TEMPERATURE_SENSOR,
    FixedObjects,
)
from klipper_exporter.collector.responses import (
    DirectoryInfo,
    HistoryList,
    HistoryTotals,
    JobQueue,
    ProcStats,
    SpoolmanStatus,
    SystemInfo,
    TemperatureStore,
)
from klipper_exporter.metrics import Sample, gauge

log = logging.getLogger(__name__)

EXPECTED_MEM_UNITS = "kB"


def emit_process_stats(stats: ProcStats) -> List[Sample]:
    samples: List[Sample] = []

    latest = stats.latest
    if latest is None:
        log.warning("No moonraker_stats in process stats, skipping Moonraker memory and CPU")
    else:
        if latest.mem_units == EXPECTED_MEM_UNITS:
            samples.append(gauge("klipper_moonraker_memory_kb",
                                 "Moonraker memory usage in Kb.", latest.memory))
        else:
            log.warning("Unrecognized Moonraker memory units %r, skipping memory usage",
                        latest.mem_units)
        samples.append(gauge("klipper_moonraker_cpu_usage",
                             "Moonraker CPU usage.", latest.cpu_usage))

    samples += [
        gauge("klipper_moonraker_websocket_connections",
              "Moonraker Websocket connection count.", stats.websocket_connections),
        gauge("klipper_system_cpu_temp",
              "Klipper system CPU temperature in celsius.", stats.cpu_temp),
        gauge("klipper_system_cpu", "Klipper system CPU usage.", stats.system_cpu),
        gauge("klipper_system_memory_total",
              "Klipper system total memory.", stats.system_memory.total),
        gauge("klipper_system_memory_available",
              "Klipper system available memory.", stats.system_memory.available),
        gauge("klipper_system_memory_used",
              "Klipper system used memory.", stats.system_memory.used),
        gauge("klipper_system_uptime", "Klipper system uptime.", stats.system_uptime),
    ]
    return samples


_NETWORK_FIELDS = (
    ("rx_bytes", "Klipper network received bytes."),
    ("tx_bytes", "Klipper network transmitted bytes."),
    ("rx_packets", "Klipper network received packets."),
    ("tx_packets", "Klipper network transmitted packets."),
    ("rx_errs", "Klipper network received errored packets."),
    ("tx_errs", "Klipper network transmitted errored packets."),
    ("rx_drop", "Klipper network received dropped packets."),
    ("tx_drop", "Klipper network transmitted dropped packets."),
    ("bandwidth", "Klipper network bandwidth."),
)


def emit_network_stats(stats: ProcStats) -> List[Sample]:
    samples = []
    for interface, net in stats.network.items():
        label = sanitize(interface)
        for field_name, help_text in _NETWORK_FIELDS:
            samples.append(gauge(f"klipper_network_{field_name}", help_text,
                                 getattr(net, field_name), interface=label))
    return samples


def emit_system_info(info: SystemInfo) -> List[Sample]:
    return [gauge("klipper_system_cpu_count", "Klipper system CPU count.", info.cpu_count)]


def emit_directory_info(info: DirectoryInfo) -> List[Sample]:
    return [
        gauge("klipper_disk_usage_total", "Klipper total disk space.", info.disk_total),
        gauge("klipper_disk_usage_used", "Klipper used disk space.", info.disk_used),
        gauge("klipper_disk_usage_available", "Klipper available disk space.", info.disk_free),
    ]


def emit_job_queue(queue: JobQueue) -> List[Sample]:
    return [gauge("klipper_job_queue_length", "Klipper job queue length.", len(queue.queued_jobs))]


def emit_history_totals(totals: HistoryTotals) -> List[Sample]:
    return [
        gauge("klipper_total_jobs", "Klipper number of total jobs.", totals.total_jobs),
        gauge("klipper_total_time", "Klipper total time.", totals.total_time),
        gauge("klipper_total_print_time", "Klipper total print time.", totals.total_print_time),
        gauge("klipper_total_filament_used", "Klipper total meters of filament used.",
              totals.total_filament_used),
        gauge("klipper_longest_job", "Klipper longest job.", totals.longest_job),
        gauge("klipper_longest_print", "Klipper longest print.", totals.longest_print),
    ]


def emit_current_print(history: HistoryList) -> List[Sample]:
    """Progress of the newest job. Zeros (not gaps) when nothing is printing."""
    job = history.latest
    printing = job is not None and job.in_progress

    def value(attr: str) -> float:
        return getattr(job, attr) if printing else 0.0

    return [
        gauge("klipper_current_print_object_height",
              "Klipper current print object height.", value("object_height")),
        gauge("klipper_current_print_first_layer_height",
              "Klipper current print first layer height.", value("first_layer_height")),
        gauge("klipper_current_print_layer_height",
              "Klipper current print layer height.", value("layer_height")),
        gauge("klipper_current_print_total_duration",
              "Klipper current print total duration.", value("total_duration")),
    ]


def emit_temperature_store(store: TemperatureStore) -> List[Sample]:
    """Legacy per-object readings, e.g. klipper_extruder_temperature from "temperatures"."""
    samples = []
    for object_name, readings in store.latest().items():
        item = metric_part(object_name)
        for field_name, reading in readings.items():
            # Store series are plural ("temperatures", "targets", "powers")
            attribute = metric_part(field_name[:-1] if field_name.endswith("s") else field_name)
            samples.append(gauge(f"klipper_{item}_{attribute}",
                                 f"Klipper {object_name} {attribute}", reading))
    return samples


def emit_fixed_objects(fixed: FixedObjects) -> List[Sample]:
    g = fixed.gcode_move
    th = fixed.toolhead
    ex = fixed.extruder
    bed = fixed.heater_bed

    samples = [
        gauge("klipper_gcode_speed_factor", "Klipper gcode speed factor.", g.speed_factor),
        gauge("klipper_gcode_speed", "Klipper gcode speed.", g.speed),
        gauge("klipper_gcode_extrude_factor", "Klipper gcode extrude factor.", g.extrude_factor),
    ]
    # gcode_position is [x, y, z, e]; skip it when Klipper sent something else
    if len(g.gcode_position) >= 4:
        for axis, position in zip("xyze", g.gcode_position):
            samples.append(gauge(f"klipper_gcode_position_{axis}",
                                 f"Klipper gcode {axis.upper()} position.", position))

    samples += [
        gauge("klipper_toolhead_print_time", "Klipper toolhead print time.", th.print_time),
        gauge("klipper_toolhead_estimated_print_time",
              "Klipper estimated print time.", th.estimated_print_time),
        gauge("klipper_toolhead_max_velocity", "Klipper toolhead max velocity.", th.max_velocity),
        gauge("klipper_toolhead_max_accel", "Klipper toolhead max acceleration.", th.max_accel),
        gauge("klipper_toolhead_max_accel_to_decel",
              "Klipper toolhead max acceleration to deceleration.", th.max_accel_to_decel),
        gauge("klipper_toolhead_square_corner_velocity",
              "Klipper toolhead square corner velocity.", th.square_corner_velocity),
        gauge("klipper_extruder_temperature", "Klipper extruder temperature.", ex.temperature),
        gauge("klipper_extruder_target", "Klipper extruder target.", ex.target),
        gauge("klipper_extruder_power", "Klipper extruder power.", ex.power),
        gauge("klipper_extruder_pressure_advance",
              "Klipper extruder pressure advance.", ex.pressure_advance),
        gauge("klipper_extruder_smooth_time", "Klipper extruder smooth time.", ex.smooth_time),
        gauge("klipper_heater_bed_temperature", "Klipper heater bed temperature.", bed.temperature),
        gauge("klipper_heater_bed_target", "Klipper heater bed target.", bed.target),
        gauge("klipper_heater_bed_power", "Klipper heater bed power.", bed.power),
        gauge("klipper_fan_speed", "Klipper fan speed.", fixed.fan.speed),
        gauge("klipper_fan_rpm", "Klipper fan RPM.", fixed.fan.rpm),
        gauge("klipper_printing_time", "The amount of time the printer has been in the Printing state.",
              fixed.idle_timeout.printing_time),
        gauge("klipper_print_file_progress",
              "The current file progress as a percentage.", fixed.virtual_sdcard.progress),
        gauge("klipper_print_file_position",
              "The current file position in bytes.", fixed.virtual_sdcard.file_position),
        gauge("klipper_print_total_duration", "Klipper print total duration.",
              fixed.print_stats.total_duration),
        gauge("klipper_print_print_duration", "Klipper print duration.",
              fixed.print_stats.print_duration),
        gauge("klipper_print_filament_used", "Klipper print filament used.",
              fixed.print_stats.filament_used),
        gauge("klipper_print_gcode_progress",
              "Klipper print gcode progress as reported by display status.", fixed.display_progress),
    ]
    return samples


_MCU_FIELDS = (
    ("mcu_awake", "klipper_mcu_awake", "Klipper MCU awake time."),
    ("mcu_task_avg", "klipper_mcu_task_avg", "Klipper MCU average task time."),
    ("mcu_task_stddev", "klipper_mcu_task_stddev", "Klipper MCU task time standard deviation."),
    ("bytes_write", "klipper_mcu_bytes_write", "Klipper MCU bytes written."),
    ("bytes_read", "klipper_mcu_bytes_read", "Klipper MCU bytes read."),
    ("bytes_retransmit", "klipper_mcu_bytes_retransmit", "Klipper MCU bytes retransmitted."),
    ("bytes_invalid", "klipper_mcu_bytes_invalid", "Klipper MCU invalid bytes."),
    ("send_seq", "klipper_mcu_send_seq", "Klipper MCU send sequence."),
    ("receive_seq", "klipper_mcu_receive_seq", "Klipper MCU receive sequence."),
    ("retransmit_seq", "klipper_mcu_retransmit_seq", "Klipper MCU retransmit sequence."),
    ("srtt", "klipper_mcu_srtt", "Klipper MCU smoothed round trip time."),
    ("rttvar", "klipper_mcu_rttvar", "Klipper MCU round trip time variance."),
    ("rto", "klipper_mcu_rto", "Klipper MCU retransmission timeout."),
    ("ready_bytes", "klipper_mcu_ready_bytes", "Klipper MCU ready bytes."),
    ("stalled_bytes", "klipper_mcu_stalled_bytes", "Klipper MCU stalled bytes."),
    ("freq", "klipper_mcu_freq", "Klipper MCU frequency."),
)

# group -> (label name, [(attribute, metric name, help)])
_GROUP_TABLES = {
    MICROCONTROLLER: ("mcu", _MCU_FIELDS),
    TEMPERATURE_SENSOR: ("sensor", (
        ("temperature", "klipper_temperature_sensor_temperature", "The temperature of the sensor."),
        ("measured_min_temp", "klipper_temperature_sensor_measured_min_temp",
         "The measured minimum temperature of the sensor."),
        ("measured_max_temp", "klipper_temperature_sensor_measured_max_temp",
         "The measured maximum temperature of the sensor."),
    )),
    TEMPERATURE_FAN: ("fan", (
        ("speed", "klipper_temperature_fan_speed", "The speed of the temperature fan."),
        ("temperature", "klipper_temperature_fan_temperature",
         "The temperature of the temperature fan."),
        ("target", "klipper_temperature_fan_target", "The target temperature of the temperature fan."),
    )),
    OUTPUT_PIN: ("pin", (
        ("value", "klipper_output_pin_value", "The value of the output pin."),
    )),
    GENERIC_FAN: ("fan", (
        ("speed", "klipper_fan_generic_speed", "The speed of the generic fan."),
        ("rpm", "klipper_fan_generic_rpm", "The RPM of the generic fan."),
    )),
    CONTROLLER_FAN: ("fan", (
        ("speed", "klipper_controller_fan_speed", "The speed of the controller fan."),
        ("rpm", "klipper_controller_fan_rpm", "The RPM of the controller fan."),
    )),
    FILAMENT_SENSOR: ("sensor", (
        ("filament_detected", "klipper_filament_sensor_detected",
         "Whether the filament sensor detects filament."),
        ("enabled", "klipper_filament_sensor_enabled", "Whether the filament sensor is enabled."),
    )),
}


def emit_dynamic_objects(groups: Dict[str, Dict[str, Any]]) -> List[Sample]:
    samples = []
    for group, (label_name, fields) in _GROUP_TABLES.items():
        for instance, values in groups.get(group, {}).items():
            label = {label_name: sanitize(instance)}
            for attribute, metric_name, help_text in fields:
                samples.append(gauge(metric_name, help_text, float(getattr(values, attribute)), **label))
    return samples


def emit_spoolman(status: SpoolmanStatus) -> List[Sample]:
    samples = [gauge("klipper_spoolman_connected",
                     "Whether Moonraker is connected to Spoolman.", status.connected)]
    if status.spool_id is not None:
        samples.append(gauge("klipper_spoolman_active_spool",
                             "The spool currently set as active in Moonraker.", 1,
                             spool_id=str(status.spool_id)))
    return samples
