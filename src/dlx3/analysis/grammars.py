"""
DLX3 Block Grammars (Functional Core)

One pure decoding function per block type.  Every grammar has the shape::

    decode_xxx(payload: bytes, max_string_length: int = 1000)
        -> (fields: dict, warnings: list[DecodeWarning])

``fields`` maps attribute names of the matching block dataclass to decoded
values; keys that are absent keep the dataclass defaults.  Grammars never
raise for conditions they are expected to tolerate:

- a payload shorter than the type's minimum header yields ``{}`` and a
  single ``TOO_SHORT`` warning;
- repeating records are decoded while a whole record remains, and a
  non-zero remainder produces exactly one ``MISALIGNED_TAIL`` warning;
- bytes left after a fixed layout produce a ``TRAILING_BYTES`` warning.

All multi-byte integers are big-endian.  Warning offsets are relative to
the start of the payload.

Package Location: src/dlx3/analysis/grammars.py
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import DecodeWarning, WarningKind
from .primitives import MAX_STRING_LENGTH, Cursor
from .records import (
    DIAGNOSTIC_HEADER_SIZE,
    DOOR_COUNT_SIZE,
    EXCHANGE_TIME_SIZE,
    LEGACY_EXCHANGE_TIME_SIZE,
    DiagnosticMessage,
    DoorConfiguration,
    DoorCount,
    DoorExchangeTime,
    TrainCar,
)

Fields = Dict[str, Any]
Warnings = List[DecodeWarning]
GrammarResult = Tuple[Fields, Warnings]
Grammar = Callable[..., GrammarResult]

# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

EXPECTED_FILE_REVISION: int = 68   # 'D'
EXPECTED_GEODETIC_SYSTEM: int = 1  # WGS84

FHDR_MIN_LENGTH: int = 10          # revision + 2 timestamps + geodetic
CDAT_MIN_LENGTH: int = 6           # timestamp + exchange time
CONF_MIN_LENGTH: int = 4
DIAG_MIN_LENGTH: int = DIAGNOSTIC_HEADER_SIZE
FSTP_MIN_LENGTH: int = 4
FORM_MIN_LENGTH: int = 4
EVNT_MIN_LENGTH: int = 4
PDWN_MIN_LENGTH: int = 8
PISM_MIN_LENGTH: int = 5
RFMS_MIN_LENGTH: int = 5
RPET_MIN_LENGTH: int = 4

# Door configuration group: u32 device id + u8 instance, then strings.
_CONF_GROUP_HEADER: int = 5
_CONF_STRINGS: Tuple[str, ...] = (
    "device_model", "door_name", "vehicle_id", "vehicle_type", "operator",
)

_FHDR_STRINGS: Tuple[str, ...] = (
    "timezone", "device_model", "device_serial", "operator", "vehicle_id",
)

_FORM_STRINGS: Tuple[str, ...] = ("vehicle_id", "vehicle_type", "operator")

# Passenger information protocol types
PISM_UNKNOWN: int = 0
PISM_IBIS: int = 1
PISM_J1587: int = 2
PISM_J1939: int = 3
PISM_CSV: int = 4
PISM_TRIP_DATA: int = 5

# Fleet management protocol types
FMS_UNKNOWN: int = 0
FMS_CAN: int = 1
FMS_ONE_WIRE: int = 2
FMS_CSV: int = 3
FMS_NOT_AVAILABLE: str = "*"

# Waypoint kinds
WAYPOINT_HALTED: int = 1
WAYPOINT_PASSED: int = 2
WAYPOINT_FIRST_OR_LAST_STOP: int = 3
WAYPOINT_KINDS = frozenset({
    WAYPOINT_HALTED, WAYPOINT_PASSED, WAYPOINT_FIRST_OR_LAST_STOP,
})

WAYPOINT_LEGACY_LENGTH: int = 16   # ts, lat, lon, speed, course
WAYPOINT_CURRENT_LENGTH: int = 20  # shortest payload tried as current format
_WAYPOINT_KIND_OFFSET: int = 8     # after departure + arrival timestamps
_WAYPOINT_FIXED_HEADER: int = 18   # 2 timestamps, kind, lat, lon, satellites

# Value used for distance/speed when the device could not measure them.
NOT_MEASURED: int = -1

WAYPOINT_FORMAT_CURRENT: str = "current"
WAYPOINT_FORMAT_LEGACY: str = "legacy"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _too_short(tag: str, payload: bytes, minimum: int) -> GrammarResult:
    return {}, [DecodeWarning(
        WarningKind.TOO_SHORT,
        f"{tag} payload is {len(payload)} bytes, at least {minimum} required",
        0,
    )]


def _check_trailing(tag: str, cursor: Cursor, warnings: Warnings) -> None:
    if cursor.remaining:
        warnings.append(DecodeWarning(
            WarningKind.TRAILING_BYTES,
            f"{cursor.remaining} unread bytes at end of {tag} payload",
            cursor.position,
        ))


def _misaligned(tag: str, cursor: Cursor, width: int, warnings: Warnings) -> None:
    if cursor.remaining:
        warnings.append(DecodeWarning(
            WarningKind.MISALIGNED_TAIL,
            f"{cursor.remaining} bytes left in {tag} payload do not form "
            f"a {width}-byte record",
            cursor.position,
        ))


def parse_key_values(text: Optional[str]) -> Tuple[Dict[str, str], List[str]]:
    """
    Split ``"k1:v1,k2:v2"`` into a dict.

    Pairs are split at the first colon and stripped; a repeated key keeps
    the last value.  Returns the mapping and the list of fragments that were
    not a usable ``key:value`` pair (blank fragments are ignored).

    Example:
        >>> parse_key_values("line:12, stop:Main St,broken")
        ({'line': '12', 'stop': 'Main St'}, ['broken'])
    """
    pairs: Dict[str, str] = {}
    rejected: List[str] = []
    if not text:
        return pairs, rejected

    for fragment in text.split(","):
        fragment = fragment.strip()
        if not fragment:
            continue
        key, sep, value = fragment.partition(":")
        key = key.strip()
        if not sep or not key:
            rejected.append(fragment)
            continue
        pairs[key] = value.strip()

    return pairs, rejected


def _warn_rejected(
    tag: str,
    rejected: List[str],
    offset: int,
    warnings: Warnings,
) -> None:
    if rejected:
        warnings.append(DecodeWarning(
            WarningKind.MALFORMED_FIELD,
            f"{tag}: ignored {len(rejected)} malformed key:value "
            f"fragment(s): {', '.join(repr(r) for r in rejected)}",
            offset,
        ))


def _read_door_counts(tag: str, cursor: Cursor, warnings: Warnings) -> List[DoorCount]:
    doors = []
    while cursor.remaining >= DOOR_COUNT_SIZE:
        doors.append(DoorCount(
            device_id=cursor.u32(),
            instance=cursor.u8(),
            boarding=cursor.i16(),
            alighting=cursor.i16(),
            uncertain=cursor.i16(),
        ))
    _misaligned(tag, cursor, DOOR_COUNT_SIZE, warnings)
    return doors


def _truncate_scale(value: int, numerator: int, denominator: int) -> int:
    """``value * numerator / denominator`` truncated toward zero."""
    scaled = abs(value) * numerator // denominator
    return -scaled if value < 0 else scaled


# ---------------------------------------------------------------------------
# FHDR / FEND
# ---------------------------------------------------------------------------

def decode_file_header(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    FHDR: first block of every file.

    Layout: u8 revision, u32 creation time, u32 previous file time,
    u8 geodetic system, then timezone, device model, device serial,
    operator and vehicle id as NUL-terminated strings.
    """
    if len(payload) < FHDR_MIN_LENGTH:
        return _too_short("FHDR", payload, FHDR_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []

    revision = cursor.u8()
    if revision != EXPECTED_FILE_REVISION:
        warnings.append(DecodeWarning(
            WarningKind.UNEXPECTED_VALUE,
            f"File revision {revision}, expected {EXPECTED_FILE_REVISION}",
            0,
        ))
    creation_time = cursor.u32()
    previous_file_time = cursor.u32()

    geodetic_system = cursor.u8()
    if geodetic_system != EXPECTED_GEODETIC_SYSTEM:
        warnings.append(DecodeWarning(
            WarningKind.UNEXPECTED_VALUE,
            f"Geodetic system {geodetic_system}, expected "
            f"{EXPECTED_GEODETIC_SYSTEM}",
            9,
        ))

    fields: Fields = {
        "file_revision": revision,
        "creation_time": creation_time,
        "previous_file_time": previous_file_time,
        "geodetic_system": geodetic_system,
    }

    missing = []
    for name in _FHDR_STRINGS:
        if cursor.at_end:
            missing.append(name)
            continue
        fields[name] = cursor.read_cstring(max_string_length)

    if missing:
        warnings.append(DecodeWarning(
            WarningKind.MALFORMED_FIELD,
            f"FHDR payload ends before: {', '.join(missing)}",
            cursor.position,
        ))

    warnings.extend(cursor.warnings)
    _check_trailing("FHDR", cursor, warnings)
    return fields, warnings


def decode_file_end(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """FEND carries no data; anything present is reported and ignored."""
    if payload:
        return {}, [DecodeWarning(
            WarningKind.TRAILING_BYTES,
            f"FEND should be empty but carries {len(payload)} bytes",
            0,
        )]
    return {}, []


# ---------------------------------------------------------------------------
# Passenger counts: CDAT / FSTP
# ---------------------------------------------------------------------------

def decode_passenger_count(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    CDAT: counts of a completed passenger exchange.

    Layout: u32 timestamp, u16 exchange time (seconds), then 11-byte door
    records.
    """
    if len(payload) < CDAT_MIN_LENGTH:
        return _too_short("CDAT", payload, CDAT_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {
        "timestamp": cursor.u32(),
        "exchange_time": cursor.u16(),
    }
    fields["doors"] = _read_door_counts("CDAT", cursor, warnings)
    return fields, warnings


def decode_intermediate_count(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """FSTP: intermediate counts; u32 timestamp then 11-byte door records."""
    if len(payload) < FSTP_MIN_LENGTH:
        return _too_short("FSTP", payload, FSTP_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {"timestamp": cursor.u32()}
    fields["doors"] = _read_door_counts("FSTP", cursor, warnings)
    return fields, warnings


# ---------------------------------------------------------------------------
# CONF
# ---------------------------------------------------------------------------

def decode_door_configuration(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    CONF: door configuration.

    Layout: u32 timestamp, then groups of u32 device id, u8 instance and
    five strings (device model, door name, vehicle id, vehicle type,
    operator).  A group with a missing or empty string is dropped and the
    remaining groups are still decoded.
    """
    if len(payload) < CONF_MIN_LENGTH:
        return _too_short("CONF", payload, CONF_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    timestamp = cursor.u32()
    doors: List[DoorConfiguration] = []

    while not cursor.at_end:
        if cursor.remaining < _CONF_GROUP_HEADER:
            _misaligned("CONF", cursor, _CONF_GROUP_HEADER, warnings)
            break

        group_offset = cursor.position
        door = DoorConfiguration(device_id=cursor.u32(), instance=cursor.u8())

        values = []
        for _ in _CONF_STRINGS:
            if cursor.at_end:
                break
            values.append(cursor.read_cstring(max_string_length))

        if len(values) < len(_CONF_STRINGS):
            warnings.append(DecodeWarning(
                WarningKind.DROPPED_RECORD,
                f"CONF group for device {door.device_id} ends after "
                f"{len(values)} of {len(_CONF_STRINGS)} strings",
                group_offset,
            ))
            break

        for name, value in zip(_CONF_STRINGS, values):
            setattr(door, name, value)

        if not door.is_complete():
            warnings.append(DecodeWarning(
                WarningKind.DROPPED_RECORD,
                f"CONF group for device {door.device_id} has empty strings",
                group_offset,
            ))
            continue

        doors.append(door)

    warnings.extend(cursor.warnings)
    return {"timestamp": timestamp, "doors": doors}, warnings


# ---------------------------------------------------------------------------
# DIAG
# ---------------------------------------------------------------------------

def _parse_unsigned(value: str, maximum: int) -> Optional[int]:
    """Plain ASCII decimal in ``[0, maximum]``, else ``None``."""
    # str.isdigit() alone accepts superscripts that int() rejects
    if not (value.isascii() and value.isdigit()):
        return None
    number = int(value)
    return number if number <= maximum else None


def _apply_device_info(
    message: DiagnosticMessage,
    offset: int,
    warnings: Warnings,
) -> None:
    pairs, rejected = parse_key_values(message.message)
    _warn_rejected("DIAG", rejected, offset, warnings)

    for key, value in pairs.items():
        if key == "addr":
            device_id = _parse_unsigned(value, 0xFFFFFFFF)
            if device_id is not None:
                message.device_id = device_id
            else:
                warnings.append(DecodeWarning(
                    WarningKind.MALFORMED_FIELD,
                    f"DIAG device address {value!r} is not a u32",
                    offset,
                ))
        elif key == "inst":
            instance = _parse_unsigned(value, 0xFF)
            if instance is not None:
                message.door_instance = instance
            else:
                warnings.append(DecodeWarning(
                    WarningKind.MALFORMED_FIELD,
                    f"DIAG door instance {value!r} is not a u8",
                    offset,
                ))
        elif key in ("info", "time"):
            message.additional_info = value


def decode_diagnostics(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    DIAG: diagnostic messages.

    Each entry is u32 timestamp, u8 module, u8 submodule, u8 message id,
    u8 category, followed by a NUL-terminated text whenever bytes remain.
    Door-controller entries get their text parsed into device fields.
    """
    if len(payload) < DIAG_MIN_LENGTH:
        return _too_short("DIAG", payload, DIAG_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    messages: List[DiagnosticMessage] = []

    while cursor.remaining >= DIAGNOSTIC_HEADER_SIZE:
        message = DiagnosticMessage(
            timestamp=cursor.u32(),
            module_id=cursor.u8(),
            submodule_id=cursor.u8(),
            message_id=cursor.u8(),
            category=cursor.u8(),
        )
        if not cursor.at_end:
            text_offset = cursor.position
            message.message = cursor.read_cstring(max_string_length)
            if message.has_device_info:
                _apply_device_info(message, text_offset, warnings)
        messages.append(message)

    _misaligned("DIAG", cursor, DIAGNOSTIC_HEADER_SIZE, warnings)
    warnings.extend(cursor.warnings)
    return {"messages": messages}, warnings


# ---------------------------------------------------------------------------
# FORM
# ---------------------------------------------------------------------------

def decode_train_formation(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    FORM: u32 timestamp then (vehicle id, vehicle type, operator) string
    triples until the payload is exhausted.  An incomplete final triple is
    kept with empty strings for the missing values.
    """
    if len(payload) < FORM_MIN_LENGTH:
        return _too_short("FORM", payload, FORM_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    timestamp = cursor.u32()
    cars: List[TrainCar] = []

    while not cursor.at_end:
        group_offset = cursor.position
        car = TrainCar()
        read = 0
        for name in _FORM_STRINGS:
            if cursor.at_end:
                break
            setattr(car, name, cursor.read_cstring(max_string_length))
            read += 1
        cars.append(car)

        if read < len(_FORM_STRINGS):
            warnings.append(DecodeWarning(
                WarningKind.MISALIGNED_TAIL,
                f"FORM car group ends after {read} of "
                f"{len(_FORM_STRINGS)} strings",
                group_offset,
            ))

    warnings.extend(cursor.warnings)
    return {"timestamp": timestamp, "cars": cars}, warnings


# ---------------------------------------------------------------------------
# EVNT / PDWN
# ---------------------------------------------------------------------------

def decode_event(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """EVNT: u32 timestamp, u8 event type, remaining bytes kept verbatim."""
    if len(payload) < EVNT_MIN_LENGTH:
        return _too_short("EVNT", payload, EVNT_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {"timestamp": cursor.u32()}

    if cursor.at_end:
        warnings.append(DecodeWarning(
            WarningKind.TOO_SHORT,
            "EVNT payload has no event type",
            cursor.position,
        ))
        return fields, warnings

    fields["event_type"] = cursor.u8()
    fields["event_data"] = cursor.read_rest()
    return fields, warnings


def decode_power_down(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    PDWN (legacy): u32 power-off and u32 power-on timestamps, optionally
    followed by a single reason byte.
    """
    if len(payload) < PDWN_MIN_LENGTH:
        return _too_short("PDWN", payload, PDWN_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {
        "power_off_time": cursor.u32(),
        "power_on_time": cursor.u32(),
    }
    if not cursor.at_end:
        fields["reason"] = cursor.u8()
    _check_trailing("PDWN", cursor, warnings)
    return fields, warnings


# ---------------------------------------------------------------------------
# PISM / rFMS
# ---------------------------------------------------------------------------

def decode_passenger_info(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    PISM: u32 timestamp, u8 protocol type, optional message string.
    Trip-data messages (type 5) are split into ``trip_data``.
    """
    if len(payload) < PISM_MIN_LENGTH:
        return _too_short("PISM", payload, PISM_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {
        "timestamp": cursor.u32(),
        "protocol_type": cursor.u8(),
    }

    if not cursor.at_end:
        text_offset = cursor.position
        message = cursor.read_cstring(max_string_length)
        fields["message"] = message
        if fields["protocol_type"] == PISM_TRIP_DATA:
            trip_data, rejected = parse_key_values(message)
            _warn_rejected("PISM", rejected, text_offset, warnings)
            fields["trip_data"] = trip_data

    warnings.extend(cursor.warnings)
    _check_trailing("PISM", cursor, warnings)
    return fields, warnings


def decode_fleet_telemetry(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    rFMS: u32 timestamp, u8 protocol type, optional message string.

    CAN-FMS and 1-Wire-FMS messages are ``key:value`` lists; a value of
    ``*`` means the vehicle did not report it and is stored as ``None``.
    """
    if len(payload) < RFMS_MIN_LENGTH:
        return _too_short("rFMS", payload, RFMS_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {
        "timestamp": cursor.u32(),
        "raw_fms_data": bytes(payload[4:]),
        "protocol_type": cursor.u8(),
    }

    if not cursor.at_end:
        text_offset = cursor.position
        message = cursor.read_cstring(max_string_length)
        fields["message"] = message
        if fields["protocol_type"] in (FMS_CAN, FMS_ONE_WIRE):
            pairs, rejected = parse_key_values(message)
            _warn_rejected("rFMS", rejected, text_offset, warnings)
            fields["values"] = {
                key: (None if value == FMS_NOT_AVAILABLE else value)
                for key, value in pairs.items()
            }

    warnings.extend(cursor.warnings)
    _check_trailing("rFMS", cursor, warnings)
    return fields, warnings


# ---------------------------------------------------------------------------
# WAYP
# ---------------------------------------------------------------------------

def waypoint_format(payload: bytes) -> Optional[str]:
    """
    Decide which waypoint layout *payload* uses.

    The format carries no version tag, so the choice is made from the
    length and the kind byte: at least 20 bytes with a known kind at
    offset 8 is the current layout, otherwise at least 16 bytes is the
    legacy layout.  ``None`` means too short for either.
    """
    if (len(payload) >= WAYPOINT_CURRENT_LENGTH
            and payload[_WAYPOINT_KIND_OFFSET] in WAYPOINT_KINDS):
        return WAYPOINT_FORMAT_CURRENT
    if len(payload) >= WAYPOINT_LEGACY_LENGTH:
        return WAYPOINT_FORMAT_LEGACY
    return None


def decode_waypoint_legacy(payload: bytes) -> GrammarResult:
    """
    Legacy waypoint: u32 timestamp, i32 latitude and longitude in
    micro-degrees, i16 speed in cm/s, i16 course.

    Position is converted to 0.0001-minute units and speed to 0.1 km/h so
    both layouts expose the same units.
    """
    cursor = Cursor(payload)
    timestamp = cursor.u32()
    latitude = cursor.i32()
    longitude = cursor.i32()
    speed = cursor.i16()
    course = cursor.i16()

    fields: Fields = {
        "format": WAYPOINT_FORMAT_LEGACY,
        "departure_time": timestamp,
        "arrival_time": timestamp,
        "kind": WAYPOINT_PASSED,
        # micro-degrees -> 0.0001 minutes: x / 1e6 * 60 * 1e4
        "latitude": _truncate_scale(latitude, 6, 10),
        "longitude": _truncate_scale(longitude, 6, 10),
        # cm/s -> 0.1 km/h: x / 100 * 3.6 * 10
        "speed": _truncate_scale(speed, 36, 100),
        "satellites": 0,
        "travelled_distance": 0,
        "stop_identifier": "",
        "course": course,
    }
    warnings: Warnings = [DecodeWarning(
        WarningKind.LEGACY_FORMAT,
        f"WAYP decoded with the legacy {WAYPOINT_LEGACY_LENGTH}-byte layout",
        0,
    )]
    _check_trailing("WAYP", cursor, warnings)
    return fields, warnings


def decode_waypoint_current(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    Current waypoint: u32 departure, u32 arrival, u8 kind, i32 latitude,
    i32 longitude (0.0001 minutes), u8 satellites, i16 travelled distance
    (m), i16 speed (0.1 km/h), optional stop identifier string.
    """
    cursor = Cursor(payload)
    warnings: Warnings = []
    fields: Fields = {
        "format": WAYPOINT_FORMAT_CURRENT,
        "departure_time": cursor.u32(),
        "arrival_time": cursor.u32(),
        "kind": cursor.u8(),
        "latitude": cursor.i32(),
        "longitude": cursor.i32(),
        "satellites": cursor.u8(),
    }

    for name in ("travelled_distance", "speed"):
        if cursor.remaining >= 2:
            fields[name] = cursor.i16()
        else:
            fields[name] = NOT_MEASURED
            warnings.append(DecodeWarning(
                WarningKind.TOO_SHORT,
                f"WAYP payload ends before {name}",
                cursor.position,
            ))

    if not cursor.at_end:
        fields["stop_identifier"] = cursor.read_cstring(max_string_length)

    warnings.extend(cursor.warnings)
    _check_trailing("WAYP", cursor, warnings)
    return fields, warnings


def decode_waypoint(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """WAYP: dispatch to the current or legacy layout (see ``waypoint_format``)."""
    layout = waypoint_format(payload)
    if layout == WAYPOINT_FORMAT_CURRENT:
        return decode_waypoint_current(payload, max_string_length)
    if layout == WAYPOINT_FORMAT_LEGACY:
        return decode_waypoint_legacy(payload)
    return _too_short("WAYP", payload, WAYPOINT_LEGACY_LENGTH)


# ---------------------------------------------------------------------------
# rPET
# ---------------------------------------------------------------------------

def decode_exchange_times(
    payload: bytes,
    max_string_length: int = MAX_STRING_LENGTH,
) -> GrammarResult:
    """
    rPET: u32 timestamp followed by 17-byte door groups (u32 device id,
    u8 instance, first/last passenger movement, first opening, last
    closing).

    When not a single full group fits but at least 5 bytes follow the
    timestamp, the older layout (u8 door id, u16 boarding time, u16
    alighting time) is decoded instead.
    """
    if len(payload) < RPET_MIN_LENGTH:
        return _too_short("rPET", payload, RPET_MIN_LENGTH)

    cursor = Cursor(payload)
    warnings: Warnings = []
    timestamp = cursor.u32()
    doors: List[DoorExchangeTime] = []

    while cursor.remaining >= EXCHANGE_TIME_SIZE:
        doors.append(DoorExchangeTime(
            device_id=cursor.u32(),
            instance=cursor.u8(),
            first_passenger_movement=cursor.u32(),
            last_passenger_movement=cursor.u32(),
            first_opening=cursor.u32(),
            last_closing=cursor.u32(),
        ))

    if not doors and cursor.remaining >= LEGACY_EXCHANGE_TIME_SIZE:
        doors.append(DoorExchangeTime(
            instance=cursor.u8(),
            first_passenger_movement=cursor.u16(),
            last_passenger_movement=cursor.u16(),
        ))
        warnings.append(DecodeWarning(
            WarningKind.LEGACY_FORMAT,
            f"rPET decoded with the legacy {LEGACY_EXCHANGE_TIME_SIZE}-byte "
            f"door layout",
            4,
        ))
        _misaligned("rPET", cursor, LEGACY_EXCHANGE_TIME_SIZE, warnings)
    else:
        _misaligned("rPET", cursor, EXCHANGE_TIME_SIZE, warnings)

    return {"timestamp": timestamp, "doors": doors}, warnings
