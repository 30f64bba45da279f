import struct

import pytest

from dlx3.analysis import WarningKind, grammars
from dlx3.analysis.grammars import (
    NOT_MEASURED,
    WAYPOINT_FORMAT_CURRENT,
    WAYPOINT_FORMAT_LEGACY,
    decode_diagnostics,
    decode_door_configuration,
    decode_event,
    decode_exchange_times,
    decode_file_end,
    decode_file_header,
    decode_fleet_telemetry,
    decode_intermediate_count,
    decode_passenger_count,
    decode_passenger_info,
    decode_power_down,
    decode_train_formation,
    decode_waypoint,
    parse_key_values,
    waypoint_format,
)


def kinds(warnings):
    return [w.kind for w in warnings]


def door(device_id, instance, boarding, alighting, uncertain=0):
    return struct.pack(">IBhhh", device_id, instance, boarding, alighting, uncertain)


LEGACY_WAYPOINT = struct.pack(">Iiihh", 1000, 50000000, 14000000, 1000, 90)


# ---------------------------------------------------------------------------
# key:value parsing
# ---------------------------------------------------------------------------

def test_key_values_split_on_first_colon():
    pairs, rejected = parse_key_values("a:1, b : 2 ,c,url:http://host:80")
    assert pairs == {"a": "1", "b": "2", "url": "http://host:80"}
    assert rejected == ["c"]


def test_key_values_edge_cases():
    assert parse_key_values("") == ({}, [])
    assert parse_key_values(None) == ({}, [])
    assert parse_key_values(":orphan,,k:1,k:2") == ({"k": "2"}, [":orphan"])


# ---------------------------------------------------------------------------
# FHDR / FEND
# ---------------------------------------------------------------------------

def test_file_header():
    payload = (
        struct.pack(">BIIB", 68, 1700000000, 1699990000, 1)
        + b"Europe/Berlin\x00PCU-9\x00SN123\x00ACME\x00BUS-7\x00"
    )
    fields, warnings = decode_file_header(payload)
    assert warnings == []
    assert fields["file_revision"] == 68
    assert fields["creation_time"] == 1700000000
    assert fields["previous_file_time"] == 1699990000
    assert fields["timezone"] == "Europe/Berlin"
    assert fields["device_model"] == "PCU-9"
    assert fields["device_serial"] == "SN123"
    assert fields["operator"] == "ACME"
    assert fields["vehicle_id"] == "BUS-7"


def test_file_header_unexpected_revision_and_missing_strings():
    payload = struct.pack(">BIIB", 67, 1, 0, 2) + b"UTC\x00"
    fields, warnings = decode_file_header(payload)
    assert fields["timezone"] == "UTC"
    assert "vehicle_id" not in fields
    assert kinds(warnings) == [
        WarningKind.UNEXPECTED_VALUE,
        WarningKind.UNEXPECTED_VALUE,
        WarningKind.MALFORMED_FIELD,
    ]


def test_file_header_too_short():
    fields, warnings = decode_file_header(b"\x44" * 9)
    assert fields == {}
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


def test_file_end():
    assert decode_file_end(b"") == ({}, [])
    fields, warnings = decode_file_end(b"\x00")
    assert kinds(warnings) == [WarningKind.TRAILING_BYTES]


# ---------------------------------------------------------------------------
# CDAT / FSTP
# ---------------------------------------------------------------------------

def test_passenger_count_header_only():
    fields, warnings = decode_passenger_count(bytes.fromhex("010203040000"))
    assert fields["timestamp"] == 0x01020304
    assert fields["exchange_time"] == 0
    assert fields["doors"] == []
    assert warnings == []


def test_passenger_count_doors():
    payload = struct.pack(">IH", 1000, 30) + door(7, 1, 5, 3) + door(8, 2, -2, 4, 1)
    fields, warnings = decode_passenger_count(payload)
    assert warnings == []
    first, second = fields["doors"]
    assert (first.device_id, first.instance, first.boarding, first.alighting) == (7, 1, 5, 3)
    assert second.boarding == -2
    assert second.uncertain == 1
    assert second.total == 2


@pytest.mark.parametrize("extra", range(1, 11))
def test_passenger_count_misaligned_tail(extra):
    payload = struct.pack(">IH", 1000, 30) + door(7, 1, 5, 3) + b"\x00" * extra
    fields, warnings = decode_passenger_count(payload)
    assert len(fields["doors"]) == 1
    assert kinds(warnings) == [WarningKind.MISALIGNED_TAIL]


def test_passenger_count_too_short():
    fields, warnings = decode_passenger_count(b"\x00" * 5)
    assert fields == {}
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


@pytest.mark.parametrize("extra", range(0, 23))
def test_intermediate_count_alignment(extra):
    payload = struct.pack(">I", 1234) + door(9, 3, 1, 0) + b"\x00" * extra
    fields, warnings = decode_intermediate_count(payload)
    assert len(fields["doors"]) == 1 + extra // 11
    expected = [] if extra % 11 == 0 else [WarningKind.MISALIGNED_TAIL]
    assert kinds(warnings) == expected


def test_intermediate_count():
    payload = struct.pack(">I", 1234) + door(9, 3, 1, 0) + door(10, 4, 0, 1)
    fields, warnings = decode_intermediate_count(payload)
    assert warnings == []
    assert fields["timestamp"] == 1234
    assert [d.device_id for d in fields["doors"]] == [9, 10]


# ---------------------------------------------------------------------------
# CONF
# ---------------------------------------------------------------------------

def conf_group(device_id, instance, strings):
    return struct.pack(">IB", device_id, instance) + b"".join(s + b"\x00" for s in strings)


def test_door_configuration():
    payload = struct.pack(">I", 100) + conf_group(
        42, 1, [b"PCU", b"Door 1", b"V1", b"Bus", b"ACME"]
    )
    fields, warnings = decode_door_configuration(payload)
    assert warnings == []
    assert fields["timestamp"] == 100
    (conf,) = fields["doors"]
    assert conf.device_id == 42
    assert conf.door_name == "Door 1"
    assert conf.operator == "ACME"


def test_door_configuration_drops_incomplete_groups():
    payload = (
        struct.pack(">I", 100)
        + conf_group(1, 1, [b"PCU", b"Door 1", b"V1", b"Bus", b"ACME"])
        + conf_group(2, 1, [b"PCU", b"", b"V1", b"Bus", b"ACME"])
        + conf_group(3, 1, [b"PCU", b"Door 3", b"V1", b"Bus", b"ACME"])
        + conf_group(4, 1, [b"PCU", b"Door 4"])
    )
    fields, warnings = decode_door_configuration(payload)
    assert [d.device_id for d in fields["doors"]] == [1, 3]
    assert kinds(warnings) == [WarningKind.DROPPED_RECORD, WarningKind.DROPPED_RECORD]


def test_door_configuration_short_group_header():
    fields, warnings = decode_door_configuration(struct.pack(">I", 100) + b"\x00\x01")
    assert fields["doors"] == []
    assert kinds(warnings) == [WarningKind.MISALIGNED_TAIL]


# ---------------------------------------------------------------------------
# DIAG
# ---------------------------------------------------------------------------

def test_diagnostics_device_info_and_bare_entry():
    payload = (
        struct.pack(">IBBBB", 1000, 20, 0, 5, 2)
        + b"addr:12345,inst:2,info:blocked\x00"
        + struct.pack(">IBBBB", 1001, 11, 0, 1, 3)
    )
    fields, warnings = decode_diagnostics(payload)
    assert warnings == []
    first, second = fields["messages"]
    assert first.device_id == 12345
    assert first.door_instance == 2
    assert first.additional_info == "blocked"
    assert first.has_device_info
    assert second.module_id == 11
    assert second.message is None
    assert second.diag_id == (11 << 8)


def test_diagnostics_other_modules_keep_raw_text():
    payload = struct.pack(">IBBBB", 1000, 11, 1, 2, 2) + b"addr:1\x00"
    fields, warnings = decode_diagnostics(payload)
    (message,) = fields["messages"]
    assert message.message == "addr:1"
    assert message.device_id is None


def test_diagnostics_bad_address():
    payload = struct.pack(">IBBBB", 1000, 20, 0, 1, 3) + b"addr:xyz,inst:1\x00"
    fields, warnings = decode_diagnostics(payload)
    (message,) = fields["messages"]
    assert message.device_id is None
    assert message.door_instance == 1
    assert kinds(warnings) == [WarningKind.MALFORMED_FIELD]


@pytest.mark.parametrize("text", [b"addr:\xb2", b"addr:+5", b"inst:256", b"inst:\xb9"])
def test_diagnostics_non_decimal_numbers_keep_other_entries(text):
    payload = (
        struct.pack(">IBBBB", 1000, 20, 0, 5, 2) + b"inst:1,info:x\x00"
        + struct.pack(">IBBBB", 1001, 20, 0, 8, 2) + text + b"\x00"
    )
    fields, warnings = decode_diagnostics(payload)
    first, second = fields["messages"]
    assert first.door_instance == 1
    assert first.additional_info == "x"
    assert second.device_id is None
    assert second.door_instance is None
    assert kinds(warnings) == [WarningKind.MALFORMED_FIELD]


def test_diagnostics_misaligned_tail():
    payload = struct.pack(">IBBBB", 1000, 11, 0, 0, 2) + b"x\x00" + b"\x01\x02\x03"
    fields, warnings = decode_diagnostics(payload)
    assert len(fields["messages"]) == 1
    assert kinds(warnings) == [WarningKind.MISALIGNED_TAIL]


def test_diagnostics_too_short():
    fields, warnings = decode_diagnostics(b"\x00" * 7)
    assert fields == {}
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


# ---------------------------------------------------------------------------
# FORM
# ---------------------------------------------------------------------------

def test_train_formation():
    payload = struct.pack(">I", 5) + b"V1\x00Bus\x00ACME\x00V2\x00Tram\x00ACME\x00"
    fields, warnings = decode_train_formation(payload)
    assert warnings == []
    assert [c.vehicle_id for c in fields["cars"]] == ["V1", "V2"]
    assert fields["cars"][1].vehicle_type == "Tram"


def test_train_formation_incomplete_last_car_is_kept():
    payload = struct.pack(">I", 5) + b"V1\x00Bus\x00ACME\x00V3\x00"
    fields, warnings = decode_train_formation(payload)
    assert len(fields["cars"]) == 2
    assert fields["cars"][1].vehicle_id == "V3"
    assert fields["cars"][1].vehicle_type == ""
    assert kinds(warnings) == [WarningKind.MISALIGNED_TAIL]


# ---------------------------------------------------------------------------
# EVNT / PDWN
# ---------------------------------------------------------------------------

def test_event():
    fields, warnings = decode_event(struct.pack(">IB", 100, 10) + b"\x01\x02")
    assert warnings == []
    assert fields == {"timestamp": 100, "event_type": 10, "event_data": b"\x01\x02"}


def test_event_without_type():
    fields, warnings = decode_event(struct.pack(">I", 100))
    assert fields == {"timestamp": 100}
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


def test_event_too_short():
    assert decode_event(b"\x00\x00\x01")[0] == {}


def test_power_down_optional_reason():
    fields, warnings = decode_power_down(struct.pack(">II", 100, 160))
    assert warnings == []
    assert "reason" not in fields

    fields, warnings = decode_power_down(struct.pack(">IIB", 100, 160, 3))
    assert fields["reason"] == 3
    assert warnings == []

    fields, warnings = decode_power_down(struct.pack(">IIBB", 100, 160, 3, 4))
    assert fields["reason"] == 3
    assert kinds(warnings) == [WarningKind.TRAILING_BYTES]


# ---------------------------------------------------------------------------
# PISM / rFMS
# ---------------------------------------------------------------------------

def test_passenger_info_trip_data():
    payload = struct.pack(">IB", 100, grammars.PISM_TRIP_DATA) + (
        b"line:12,stop:Main St,stopsleft:4,broken\x00"
    )
    fields, warnings = decode_passenger_info(payload)
    assert fields["trip_data"] == {"line": "12", "stop": "Main St", "stopsleft": "4"}
    assert kinds(warnings) == [WarningKind.MALFORMED_FIELD]


def test_passenger_info_other_protocol_keeps_message():
    payload = struct.pack(">IB", 100, grammars.PISM_IBIS) + b"line:12\x00"
    fields, warnings = decode_passenger_info(payload)
    assert fields["message"] == "line:12"
    assert "trip_data" not in fields
    assert warnings == []


def test_fleet_telemetry_not_available_values():
    payload = struct.pack(">IB", 100, grammars.FMS_CAN) + b"SPEED:55.5,FUEL:*\x00"
    fields, warnings = decode_fleet_telemetry(payload)
    assert warnings == []
    assert fields["values"] == {"SPEED": "55.5", "FUEL": None}
    assert fields["raw_fms_data"] == payload[4:]


def test_fleet_telemetry_csv_is_not_split():
    payload = struct.pack(">IB", 100, grammars.FMS_CSV) + b"1,2,3\x00"
    fields, warnings = decode_fleet_telemetry(payload)
    assert fields["message"] == "1,2,3"
    assert "values" not in fields
    assert warnings == []


# ---------------------------------------------------------------------------
# WAYP
# ---------------------------------------------------------------------------

def test_waypoint_current_layout():
    payload = (
        struct.pack(">IIBiiBhh", 2000, 1990, 1, 30000000, 8400000, 9, 1500, 523)
        + b"Stop A\x00"
    )
    fields, warnings = decode_waypoint(payload)
    assert warnings == []
    assert fields["format"] == WAYPOINT_FORMAT_CURRENT
    assert fields["departure_time"] == 2000
    assert fields["arrival_time"] == 1990
    assert fields["kind"] == 1
    assert fields["latitude"] == 30000000
    assert fields["satellites"] == 9
    assert fields["travelled_distance"] == 1500
    assert fields["speed"] == 523
    assert fields["stop_identifier"] == "Stop A"


def test_waypoint_15_bytes_is_too_short():
    fields, warnings = decode_waypoint(LEGACY_WAYPOINT[:15])
    assert fields == {}
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


def test_waypoint_16_bytes_is_legacy():
    fields, warnings = decode_waypoint(LEGACY_WAYPOINT)
    assert kinds(warnings) == [WarningKind.LEGACY_FORMAT]
    assert fields["format"] == WAYPOINT_FORMAT_LEGACY
    assert fields["departure_time"] == fields["arrival_time"] == 1000
    assert fields["kind"] == grammars.WAYPOINT_PASSED
    assert fields["latitude"] == 30000000
    assert fields["longitude"] == 8400000
    assert fields["speed"] == 360
    assert fields["course"] == 90


def test_waypoint_19_bytes_is_legacy_with_trailing_bytes():
    fields, warnings = decode_waypoint(LEGACY_WAYPOINT + b"\x00\x00\x00")
    assert fields["format"] == WAYPOINT_FORMAT_LEGACY
    assert kinds(warnings) == [WarningKind.LEGACY_FORMAT, WarningKind.TRAILING_BYTES]


def test_waypoint_20_bytes_with_known_kind_is_current():
    payload = struct.pack(">IIBiiBh", 2000, 1990, 3, 1, 2, 4, 100)
    assert len(payload) == 20
    fields, warnings = decode_waypoint(payload)
    assert fields["format"] == WAYPOINT_FORMAT_CURRENT
    assert fields["travelled_distance"] == 100
    assert fields["speed"] == NOT_MEASURED
    assert kinds(warnings) == [WarningKind.TOO_SHORT]


def test_waypoint_20_bytes_with_unknown_kind_is_legacy():
    payload = LEGACY_WAYPOINT + b"\x00" * 4
    assert payload[8] not in grammars.WAYPOINT_KINDS
    assert waypoint_format(payload) == WAYPOINT_FORMAT_LEGACY


def test_waypoint_legacy_truncates_toward_zero():
    payload = struct.pack(">Iiihh", 1000, -7, 7, -1, 0)
    fields, _ = decode_waypoint(payload)
    assert fields["latitude"] == -4
    assert fields["longitude"] == 4
    assert fields["speed"] == 0


# ---------------------------------------------------------------------------
# rPET
# ---------------------------------------------------------------------------

def exchange(device_id, instance, fpm, lpm, fo, lc):
    return struct.pack(">IBIIII", device_id, instance, fpm, lpm, fo, lc)


def test_exchange_times():
    payload = (
        struct.pack(">I", 500)
        + exchange(9, 1, 100, 160, 90, 170)
        + exchange(10, 2, 0, 0, 95, 165)
    )
    fields, warnings = decode_exchange_times(payload)
    assert warnings == []
    first, second = fields["doors"]
    assert first.passenger_exchange_seconds == 60
    assert first.door_open_seconds == 80
    assert second.passenger_exchange_seconds is None


def test_exchange_times_legacy_layout():
    payload = struct.pack(">I", 500) + struct.pack(">BHH", 3, 10, 20)
    fields, warnings = decode_exchange_times(payload)
    (entry,) = fields["doors"]
    assert entry.instance == 3
    assert entry.first_passenger_movement == 10
    assert entry.last_passenger_movement == 20
    assert kinds(warnings) == [WarningKind.LEGACY_FORMAT]


def test_exchange_times_misaligned_tail():
    payload = struct.pack(">I", 500) + exchange(9, 1, 1, 2, 3, 4) + b"\x00" * 3
    fields, warnings = decode_exchange_times(payload)
    assert len(fields["doors"]) == 1
    assert kinds(warnings) == [WarningKind.MISALIGNED_TAIL]


def test_exchange_times_header_only():
    fields, warnings = decode_exchange_times(struct.pack(">I", 500))
    assert fields == {"timestamp": 500, "doors": []}
    assert warnings == []
