"""
Printer object status parsing.

/printer/objects/query returns one JSON object whose keys are a mix of
fixed Klipper objects ("toolhead", "extruder", ...) and objects the user
named in printer.cfg ("temperature_sensor chamber", "mcu rpi", ...). We
parse it in two independent passes over the same decoded dict:

  1. the fixed pass picks out the known objects and ignores everything else
  2. the dynamic pass walks every key through PREFIX_RULES and decodes the
     matches into per-group typed values, keyed by instance name

The same rules classify the bare names from /printer/objects/list during
discovery, so the query we send and the response we parse always agree on
what counts as a custom object.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple
from urllib.parse import quote

from klipper_exporter.collector.responses import as_bool, as_dict, as_float, as_list, as_str

MICROCONTROLLER = "microcontroller"
TEMPERATURE_SENSOR = "temperature_sensor"
TEMPERATURE_FAN = "temperature_fan"
OUTPUT_PIN = "output_pin"
GENERIC_FAN = "generic_fan"
CONTROLLER_FAN = "controller_fan"
FILAMENT_SENSOR = "filament_sensor"

# Instance name for the primary, unlabeled "mcu" object
DEFAULT_MCU = "mcu"


# -- Fixed objects --


@dataclass
class GcodeMove:
    speed_factor: float = 0.0
    speed: float = 0.0
    extrude_factor: float = 0.0
    gcode_position: List[float] = field(default_factory=list)


@dataclass
class Toolhead:
    print_time: float = 0.0
    estimated_print_time: float = 0.0
    max_velocity: float = 0.0
    max_accel: float = 0.0
    max_accel_to_decel: float = 0.0
    square_corner_velocity: float = 0.0


@dataclass
class Extruder:
    temperature: float = 0.0
    target: float = 0.0
    power: float = 0.0
    pressure_advance: float = 0.0
    smooth_time: float = 0.0


@dataclass
class HeaterBed:
    temperature: float = 0.0
    target: float = 0.0
    power: float = 0.0


@dataclass
class Fan:
    speed: float = 0.0
    rpm: float = 0.0


@dataclass
class IdleTimeout:
    state: str = ""
    printing_time: float = 0.0


@dataclass
class VirtualSdCard:
    progress: float = 0.0
    is_active: bool = False
    file_position: float = 0.0


@dataclass
class PrintStats:
    total_duration: float = 0.0
    print_duration: float = 0.0
    filament_used: float = 0.0


@dataclass
class FixedObjects:
    gcode_move: GcodeMove = field(default_factory=GcodeMove)
    toolhead: Toolhead = field(default_factory=Toolhead)
    extruder: Extruder = field(default_factory=Extruder)
    heater_bed: HeaterBed = field(default_factory=HeaterBed)
    fan: Fan = field(default_factory=Fan)
    idle_timeout: IdleTimeout = field(default_factory=IdleTimeout)
    virtual_sdcard: VirtualSdCard = field(default_factory=VirtualSdCard)
    print_stats: PrintStats = field(default_factory=PrintStats)
    display_progress: float = 0.0


# Field selections sent with every query. Objects without "=" return all fields.
FIXED_QUERY: Tuple[str, ...] = (
    "gcode_move=speed_factor,speed,extrude_factor,gcode_position",
    "toolhead=print_time,estimated_print_time,max_velocity,max_accel,"
    "max_accel_to_decel,square_corner_velocity",
    "extruder",
    "heater_bed",
    "fan",
    "idle_timeout",
    "virtual_sdcard",
    "print_stats=total_duration,print_duration,filament_used",
    "display_status",
)


def _decode_fixed(status: Dict[str, Any]) -> FixedObjects:
    gcode_move = as_dict(status.get("gcode_move"))
    toolhead = as_dict(status.get("toolhead"))
    extruder = as_dict(status.get("extruder"))
    heater_bed = as_dict(status.get("heater_bed"))
    fan = as_dict(status.get("fan"))
    idle_timeout = as_dict(status.get("idle_timeout"))
    sdcard = as_dict(status.get("virtual_sdcard"))
    print_stats = as_dict(status.get("print_stats"))

    return FixedObjects(
        gcode_move=GcodeMove(
            speed_factor=as_float(gcode_move.get("speed_factor")),
            speed=as_float(gcode_move.get("speed")),
            extrude_factor=as_float(gcode_move.get("extrude_factor")),
            gcode_position=[as_float(p) for p in as_list(gcode_move.get("gcode_position"))],
        ),
        toolhead=Toolhead(
            print_time=as_float(toolhead.get("print_time")),
            estimated_print_time=as_float(toolhead.get("estimated_print_time")),
            max_velocity=as_float(toolhead.get("max_velocity")),
            max_accel=as_float(toolhead.get("max_accel")),
            max_accel_to_decel=as_float(toolhead.get("max_accel_to_decel")),
            square_corner_velocity=as_float(toolhead.get("square_corner_velocity")),
        ),
        extruder=Extruder(
            temperature=as_float(extruder.get("temperature")),
            target=as_float(extruder.get("target")),
            power=as_float(extruder.get("power")),
            pressure_advance=as_float(extruder.get("pressure_advance")),
            smooth_time=as_float(extruder.get("smooth_time")),
        ),
        heater_bed=HeaterBed(
            temperature=as_float(heater_bed.get("temperature")),
            target=as_float(heater_bed.get("target")),
            power=as_float(heater_bed.get("power")),
        ),
        fan=_decode_fan(fan),
        idle_timeout=IdleTimeout(
            state=as_str(idle_timeout.get("state")),
            printing_time=as_float(idle_timeout.get("printing_time")),
        ),
        virtual_sdcard=VirtualSdCard(
            progress=as_float(sdcard.get("progress")),
            is_active=as_bool(sdcard.get("is_active")),
            file_position=as_float(sdcard.get("file_position")),
        ),
        print_stats=PrintStats(
            total_duration=as_float(print_stats.get("total_duration")),
            print_duration=as_float(print_stats.get("print_duration")),
            filament_used=as_float(print_stats.get("filament_used")),
        ),
        display_progress=as_float(as_dict(status.get("display_status")).get("progress")),
    )


# -- Dynamic objects --


@dataclass
class McuStats:
    mcu_awake: float = 0.0
    mcu_task_avg: float = 0.0
    mcu_task_stddev: float = 0.0
    bytes_write: float = 0.0
    bytes_read: float = 0.0
    bytes_retransmit: float = 0.0
    bytes_invalid: float = 0.0
    send_seq: float = 0.0
    receive_seq: float = 0.0
    retransmit_seq: float = 0.0
    srtt: float = 0.0
    rttvar: float = 0.0
    rto: float = 0.0
    ready_bytes: float = 0.0
    stalled_bytes: float = 0.0
    freq: float = 0.0


@dataclass
class TemperatureSensor:
    temperature: float = 0.0
    measured_min_temp: float = 0.0
    measured_max_temp: float = 0.0


@dataclass
class TemperatureFan:
    speed: float = 0.0
    temperature: float = 0.0
    target: float = 0.0


@dataclass
class OutputPin:
    value: float = 0.0


@dataclass
class FilamentSensor:
    filament_detected: bool = False
    enabled: bool = False


def _decode_mcu(raw: Dict[str, Any]) -> McuStats:
    stats = as_dict(raw.get("last_stats"))
    return McuStats(
        mcu_awake=as_float(stats.get("mcu_awake")),
        mcu_task_avg=as_float(stats.get("mcu_task_avg")),
        mcu_task_stddev=as_float(stats.get("mcu_task_stddev")),
        bytes_write=as_float(stats.get("bytes_write")),
        bytes_read=as_float(stats.get("bytes_read")),
        bytes_retransmit=as_float(stats.get("bytes_retransmit")),
        bytes_invalid=as_float(stats.get("bytes_invalid")),
        send_seq=as_float(stats.get("send_seq")),
        receive_seq=as_float(stats.get("receive_seq")),
        retransmit_seq=as_float(stats.get("retransmit_seq")),
        srtt=as_float(stats.get("srtt")),
        rttvar=as_float(stats.get("rttvar")),
        rto=as_float(stats.get("rto")),
        ready_bytes=as_float(stats.get("ready_bytes")),
        stalled_bytes=as_float(stats.get("stalled_bytes")),
        freq=as_float(stats.get("freq")),
    )


def _decode_temperature_sensor(raw: Dict[str, Any]) -> TemperatureSensor:
    return TemperatureSensor(
        temperature=as_float(raw.get("temperature")),
        measured_min_temp=as_float(raw.get("measured_min_temp")),
        measured_max_temp=as_float(raw.get("measured_max_temp")),
    )


def _decode_temperature_fan(raw: Dict[str, Any]) -> TemperatureFan:
    return TemperatureFan(
        speed=as_float(raw.get("speed")),
        temperature=as_float(raw.get("temperature")),
        target=as_float(raw.get("target")),
    )


def _decode_output_pin(raw: Dict[str, Any]) -> OutputPin:
    return OutputPin(value=as_float(raw.get("value")))


def _decode_fan(raw: Dict[str, Any]) -> Fan:
    # rpm is null for fans without a tachometer
    return Fan(speed=as_float(raw.get("speed")), rpm=as_float(raw.get("rpm")))


def _decode_filament_sensor(raw: Dict[str, Any]) -> FilamentSensor:
    return FilamentSensor(
        filament_detected=as_bool(raw.get("filament_detected")),
        enabled=as_bool(raw.get("enabled")),
    )


class Entity(NamedTuple):
    """A user-named printer object, e.g. ("temperature_sensor", "chamber", "temperature_sensor chamber")."""

    group: str
    name: str
    object_name: str


@dataclass(frozen=True)
class PrefixRule:
    group: str
    pattern: "re.Pattern[str]"
    decode: Callable[[Dict[str, Any]], Any]
    trim: bool = False
    default_name: Optional[str] = None

    def match(self, object_name: str) -> Optional[str]:
        """Instance name for object_name, or None if this rule doesn't apply."""
        m = self.pattern.match(object_name)
        if m is None:
            return None
        label = m.group("label")
        if label is None:
            return self.default_name
        return label.strip() if self.trim else label


# Evaluated top to bottom; the first matching rule claims the key.
# The mcu rule is anchored: "mcu" or "mcu <name>" with exactly one space, so
# keys like "mcu_temp" or "mcu  rpi" are not microcontrollers.
PREFIX_RULES: Tuple[PrefixRule, ...] = (
    PrefixRule(MICROCONTROLLER, re.compile(r"^mcu(?: (?P<label>\S.*))?$"), _decode_mcu,
               trim=True, default_name=DEFAULT_MCU),
    PrefixRule(TEMPERATURE_SENSOR, re.compile(r"^temperature_sensor (?P<label>.+)$"),
               _decode_temperature_sensor),
    PrefixRule(TEMPERATURE_FAN, re.compile(r"^temperature_fan (?P<label>.+)$"),
               _decode_temperature_fan),
    PrefixRule(OUTPUT_PIN, re.compile(r"^output_pin (?P<label>.+)$"), _decode_output_pin),
    PrefixRule(GENERIC_FAN, re.compile(r"^fan_generic (?P<label>.+)$"), _decode_fan),
    PrefixRule(CONTROLLER_FAN, re.compile(r"^controller_fan (?P<label>.+)$"), _decode_fan),
    PrefixRule(FILAMENT_SENSOR, re.compile(r"^filament_(?:switch|motion)_sensor (?P<label>.*)$"),
               _decode_filament_sensor, trim=True),
)

GROUPS: Tuple[str, ...] = tuple(rule.group for rule in PREFIX_RULES)


def classify_name(object_name: str) -> Optional[Entity]:
    for rule in PREFIX_RULES:
        name = rule.match(object_name)
        if name is not None:
            return Entity(rule.group, name, object_name)
    return None


def group_entities(object_names: List[str]) -> Dict[str, List[Entity]]:
    """Bucket the user-named objects from /printer/objects/list by group, keeping list order."""
    grouped: Dict[str, List[Entity]] = {group: [] for group in GROUPS}
    for object_name in object_names:
        entity = classify_name(object_name)
        if entity is not None:
            grouped[entity.group].append(entity)
    return grouped


def _decode_dynamic(status: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {group: {} for group in GROUPS}
    for key, value in status.items():
        for rule in PREFIX_RULES:
            name = rule.match(key)
            if name is not None:
                groups[rule.group][name] = rule.decode(as_dict(value))
                break
    return groups


def classify(status: Dict[str, Any]) -> Tuple[FixedObjects, Dict[str, Dict[str, Any]]]:
    """Split a printer object status dict into fixed objects and named groups.

    Both passes only read `status`, so whatever one of them makes of a
    malformed entry has no effect on the other.
    """
    return _decode_fixed(status), _decode_dynamic(status)


def build_query(entities: Dict[str, List[Entity]]) -> str:
    """Query string asking for the fixed objects plus every discovered entity.

    Klipper only returns user-named objects when they're requested by their
    full name, so each one is listed explicitly. MCUs only need last_stats.
    """
    parts = list(FIXED_QUERY)
    for group in GROUPS:
        for entity in entities.get(group, []):
            object_name = quote(entity.object_name, safe="")
            if group == MICROCONTROLLER:
                parts.append(f"{object_name}=last_stats")
            else:
                parts.append(object_name)
    return "&".join(parts)
