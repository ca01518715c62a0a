"""Tests for printer object classification and query building."""

from urllib.parse import parse_qsl

from klipper_exporter.collector.printer_objects import (
    CONTROLLER_FAN,
    DEFAULT_MCU,
    FILAMENT_SENSOR,
    FIXED_QUERY,
    GENERIC_FAN,
    MICROCONTROLLER,
    OUTPUT_PIN,
    TEMPERATURE_FAN,
    TEMPERATURE_SENSOR,
    Entity,
    build_query,
    classify,
    classify_name,
    group_entities,
)
from klipper_exporter.mock import payloads


def _status():
    return payloads.objects_query()["result"]["status"]


def test_classify_groups_dynamic_objects():
    _, groups = classify(_status())

    assert set(groups[TEMPERATURE_SENSOR]) == {"Chamber"}
    assert set(groups[MICROCONTROLLER]) == {DEFAULT_MCU, "rpi"}
    assert set(groups[FILAMENT_SENSOR]) == {"Extruder", "runout"}
    assert set(groups[TEMPERATURE_FAN]) == {"exhaust"}
    assert set(groups[OUTPUT_PIN]) == {"caselight"}
    assert set(groups[GENERIC_FAN]) == {"nevermore"}
    assert set(groups[CONTROLLER_FAN]) == {"electronics"}


def test_classify_decodes_group_fields():
    _, groups = classify(_status())

    chamber = groups[TEMPERATURE_SENSOR]["Chamber"]
    assert chamber.temperature == 38.5
    assert chamber.measured_max_temp == 41.0

    assert groups[MICROCONTROLLER][DEFAULT_MCU].freq == 180000215
    rpi = groups[MICROCONTROLLER]["rpi"]
    assert rpi.bytes_read == 120554
    assert rpi.mcu_task_avg == 0.0  # not sent, zero filled

    assert groups[FILAMENT_SENSOR]["Extruder"].filament_detected is True
    assert groups[CONTROLLER_FAN]["electronics"].rpm == 0.0  # null rpm


def test_classify_fixed_objects():
    fixed, _ = classify(_status())

    assert fixed.gcode_move.gcode_position == [120.5, 98.25, 4.2, 1250.3]
    assert fixed.toolhead.max_accel == 3000.0
    assert fixed.extruder.pressure_advance == 0.045
    assert fixed.heater_bed.target == 100.0
    assert fixed.idle_timeout.state == "Printing"
    assert fixed.virtual_sdcard.is_active is True
    assert fixed.print_stats.filament_used == 4300.1
    assert fixed.display_progress == 0.3


def test_fixed_pass_survives_garbage_dynamic_entries():
    status = _status()
    status["temperature_sensor broken"] = "not an object"
    status["mcu weird"] = None

    fixed, groups = classify(status)

    assert fixed.extruder.temperature == 245.1
    assert groups[TEMPERATURE_SENSOR]["broken"].temperature == 0.0
    assert groups[MICROCONTROLLER]["weird"].freq == 0.0
    assert groups[TEMPERATURE_SENSOR]["Chamber"].temperature == 38.5


def test_empty_status_is_all_zero():
    fixed, groups = classify({})
    assert fixed.extruder.temperature == 0.0
    assert fixed.gcode_move.gcode_position == []
    assert all(not members for members in groups.values())


def test_classify_name_rules():
    assert classify_name("mcu") == Entity(MICROCONTROLLER, DEFAULT_MCU, "mcu")
    assert classify_name("mcu toolboard") == Entity(MICROCONTROLLER, "toolboard", "mcu toolboard")
    assert classify_name("temperature_sensor raspberry pi") == Entity(
        TEMPERATURE_SENSOR, "raspberry pi", "temperature_sensor raspberry pi")
    assert classify_name("filament_motion_sensor  btt ") == Entity(
        FILAMENT_SENSOR, "btt", "filament_motion_sensor  btt ")
    assert classify_name("fan_generic exhaust").group == GENERIC_FAN


def test_classify_name_ignores_fixed_and_bare_prefixes():
    for name in ["extruder", "heater_bed", "toolhead", "fan", "temperature_sensor",
                 "mcu_temp", "mcu  rpi", "output_pin", "webhooks", "heater_generic chamber"]:
        assert classify_name(name) is None, name


def test_group_entities_keeps_order():
    grouped = group_entities(payloads.objects_list()["result"]["objects"])
    assert [e.name for e in grouped[MICROCONTROLLER]] == [DEFAULT_MCU, "rpi"]
    assert [e.object_name for e in grouped[FILAMENT_SENSOR]] == [
        "filament_switch_sensor Extruder",
        "filament_motion_sensor runout",
    ]


def test_build_query_without_entities_is_fixed_objects_only():
    assert build_query({}) == "&".join(FIXED_QUERY)


def test_build_query_names_every_entity():
    grouped = group_entities(payloads.objects_list()["result"]["objects"])
    query = build_query(grouped)
    params = parse_qsl(query, keep_blank_values=True)
    keys = [k for k, _ in params]

    assert ("gcode_move", "speed_factor,speed,extrude_factor,gcode_position") in params
    assert ("mcu", "last_stats") in params
    assert ("mcu rpi", "last_stats") in params
    assert "temperature_sensor Chamber" in keys
    assert "controller_fan electronics" in keys
    assert "filament_switch_sensor Extruder" in keys
    assert "mcu%20rpi=last_stats" in query
