"""
DLX3 Block Variants (Functional Core)

A closed set of dataclasses, one per known type tag, plus ``UnknownBlock``
for tags without a grammar.  Every variant keeps the raw envelope (tag,
declared length, checksum, payload) next to its decoded fields so a block
can be audited or re-checksummed later.

Decoding is driven by ``Block.populate``: it copies the envelope onto the
instance and runs the class's pure grammar function.  Any unexpected
exception raised by a grammar is converted into a ``DECODE_ERROR`` warning
and the block keeps its default field values, so one bad payload never
aborts the file.

Package Location: src/dlx3/analysis/blocks.py
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from . import grammars
from .errors import DecodeWarning, WarningKind
from .primitives import MAX_STRING_LENGTH
from .records import (
    DiagnosticMessage,
    DoorConfiguration,
    DoorCount,
    DoorExchangeTime,
    TrainCar,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockEnvelope:
    """A raw frame as read from the stream, before any payload decoding."""

    type_tag: str
    declared_length: int
    payload: bytes
    checksum: int
    offset: int = 0

    def __post_init__(self):
        if len(self.payload) != self.declared_length:
            raise ValueError(
                f"{self.type_tag} payload is {len(self.payload)} bytes but "
                f"{self.declared_length} were declared"
            )


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass
class Block:
    """Fields shared by every block variant."""

    TAG: ClassVar[str] = ""
    grammar: ClassVar[Optional[grammars.Grammar]] = None

    type_tag: str = ""
    declared_length: int = 0
    checksum: int = 0
    payload: bytes = b""
    offset: int = 0
    checksum_valid: bool = True
    warnings: List[DecodeWarning] = field(default_factory=list)

    def populate(
        self,
        envelope: BlockEnvelope,
        max_string_length: int = MAX_STRING_LENGTH,
    ) -> "Block":
        """
        Fill this (freshly constructed) block from *envelope*.

        Returns:
            ``self``, for chaining.
        """
        self.type_tag = envelope.type_tag
        self.declared_length = envelope.declared_length
        self.checksum = envelope.checksum
        self.payload = envelope.payload
        self.offset = envelope.offset

        grammar = type(self).grammar
        if grammar is None:
            return self

        try:
            fields, warnings = grammar(envelope.payload, max_string_length)
        except Exception as exc:
            logger.debug(
                f"{envelope.type_tag} grammar failed: {exc}",
                extra={"type_tag": envelope.type_tag, "offset": envelope.offset},
            )
            self.warnings.append(DecodeWarning(
                WarningKind.DECODE_ERROR,
                f"{type(exc).__name__}: {exc}",
                0,
            ))
            return self

        for name, value in fields.items():
            setattr(self, name, value)
        self.warnings.extend(warnings)
        return self

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def warning_kinds(self) -> List[WarningKind]:
        return [w.kind for w in self.warnings]

    def to_dict(self, include_payload: bool = False) -> Dict[str, Any]:
        """
        Plain-dict view for JSON export.

        Bytes values are rendered as hex strings and warnings as their
        string form.  The raw payload is omitted unless requested.
        """
        data = dataclasses.asdict(self)
        if not include_payload:
            data.pop("payload", None)
        data["warnings"] = [str(w) for w in self.warnings]
        return _hexify(data)

    def describe(self) -> str:
        return f"{self.type_tag} ({self.declared_length} bytes)"


def _hexify(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {k: _hexify(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_hexify(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

@dataclass
class UnknownBlock(Block):
    """A frame whose tag has no registered grammar; only the envelope is kept."""


@dataclass
class FileHeaderBlock(Block):
    TAG: ClassVar[str] = "FHDR"
    grammar = staticmethod(grammars.decode_file_header)

    file_revision: int = 0
    creation_time: int = 0
    previous_file_time: int = 0
    geodetic_system: int = 0
    timezone: str = ""
    device_model: str = ""
    device_serial: str = ""
    operator: str = ""
    vehicle_id: str = ""

    @property
    def is_valid_file_revision(self) -> bool:
        return self.file_revision == grammars.EXPECTED_FILE_REVISION

    @property
    def is_valid_geodetic_system(self) -> bool:
        return self.geodetic_system == grammars.EXPECTED_GEODETIC_SYSTEM

    @property
    def has_previous_file(self) -> bool:
        return self.previous_file_time != 0

    def describe(self) -> str:
        return (
            f"FHDR revision={self.file_revision} device={self.device_model} "
            f"serial={self.device_serial} operator={self.operator} "
            f"vehicle={self.vehicle_id} tz={self.timezone}"
        )


@dataclass
class FileEndBlock(Block):
    TAG: ClassVar[str] = "FEND"
    grammar = staticmethod(grammars.decode_file_end)

    def describe(self) -> str:
        return "FEND"


@dataclass
class PassengerCountBlock(Block):
    """CDAT: door counts of a completed passenger exchange."""

    TAG: ClassVar[str] = "CDAT"
    grammar = staticmethod(grammars.decode_passenger_count)

    timestamp: int = 0
    exchange_time: int = 0
    doors: List[DoorCount] = field(default_factory=list)

    @property
    def total_boarding(self) -> int:
        return sum(d.boarding for d in self.doors)

    @property
    def total_alighting(self) -> int:
        return sum(d.alighting for d in self.doors)

    def describe(self) -> str:
        return (
            f"CDAT ts={self.timestamp} doors={len(self.doors)} "
            f"in={self.total_boarding} out={self.total_alighting}"
        )


@dataclass
class IntermediateCountBlock(Block):
    """FSTP: door counts at an intermediate checkpoint."""

    TAG: ClassVar[str] = "FSTP"
    grammar = staticmethod(grammars.decode_intermediate_count)

    timestamp: int = 0
    doors: List[DoorCount] = field(default_factory=list)

    def describe(self) -> str:
        return f"FSTP ts={self.timestamp} doors={len(self.doors)}"


@dataclass
class DoorConfigurationBlock(Block):
    TAG: ClassVar[str] = "CONF"
    grammar = staticmethod(grammars.decode_door_configuration)

    timestamp: int = 0
    doors: List[DoorConfiguration] = field(default_factory=list)

    def describe(self) -> str:
        return f"CONF ts={self.timestamp} doors={len(self.doors)}"


@dataclass
class DiagnosticBlock(Block):
    TAG: ClassVar[str] = "DIAG"
    grammar = staticmethod(grammars.decode_diagnostics)

    messages: List[DiagnosticMessage] = field(default_factory=list)

    @property
    def timestamp(self) -> int:
        return self.messages[0].timestamp if self.messages else 0

    def describe(self) -> str:
        return f"DIAG messages={len(self.messages)}"


@dataclass
class TrainFormationBlock(Block):
    TAG: ClassVar[str] = "FORM"
    grammar = staticmethod(grammars.decode_train_formation)

    timestamp: int = 0
    cars: List[TrainCar] = field(default_factory=list)

    def describe(self) -> str:
        return f"FORM ts={self.timestamp} cars={len(self.cars)}"


@dataclass
class EventBlock(Block):
    """
    EVNT: a user-defined event.  ``event_data`` is opaque; its meaning
    depends on ``event_type`` (see ``dlx3.analysis.catalogs``).
    """

    TAG: ClassVar[str] = "EVNT"
    grammar = staticmethod(grammars.decode_event)

    timestamp: int = 0
    event_type: int = 0
    event_data: bytes = b""

    def describe(self) -> str:
        return f"EVNT ts={self.timestamp} type={self.event_type}"


@dataclass
class PowerDownBlock(Block):
    """PDWN: legacy power cycle record, superseded by EVNT types 8 and 9."""

    TAG: ClassVar[str] = "PDWN"
    grammar = staticmethod(grammars.decode_power_down)

    power_off_time: int = 0
    power_on_time: int = 0
    reason: Optional[int] = None

    @property
    def duration_seconds(self) -> int:
        return self.power_on_time - self.power_off_time

    def describe(self) -> str:
        return (
            f"PDWN off={self.power_off_time} on={self.power_on_time} "
            f"reason={self.reason}"
        )


@dataclass
class PassengerInfoBlock(Block):
    TAG: ClassVar[str] = "PISM"
    grammar = staticmethod(grammars.decode_passenger_info)

    timestamp: int = 0
    protocol_type: int = grammars.PISM_UNKNOWN
    message: Optional[str] = None
    trip_data: Dict[str, str] = field(default_factory=dict)

    def get_trip_value(self, key: str) -> Optional[str]:
        if self.protocol_type != grammars.PISM_TRIP_DATA:
            return None
        return self.trip_data.get(key)

    @property
    def line(self) -> Optional[str]:
        return self.get_trip_value("line")

    @property
    def route(self) -> Optional[str]:
        return self.get_trip_value("route")

    @property
    def trip(self) -> Optional[str]:
        return self.get_trip_value("trip")

    @property
    def stop(self) -> Optional[str]:
        return self.get_trip_value("stop")

    @property
    def stop_id(self) -> Optional[str]:
        return self.get_trip_value("stopid")

    @property
    def next_stop(self) -> Optional[str]:
        return self.get_trip_value("nextstop")

    @property
    def destination(self) -> Optional[str]:
        return self.get_trip_value("destination")

    @property
    def stops_left(self) -> Optional[int]:
        value = self.get_trip_value("stopsleft")
        try:
            return int(value) if value is not None else None
        except ValueError:
            return None

    def describe(self) -> str:
        return f"PISM ts={self.timestamp} type={self.protocol_type} msg={self.message!r}"


@dataclass
class WaypointBlock(Block):
    """
    WAYP: vehicle position sample.

    Latitude and longitude are in 0.0001 arc-minutes (0 = unknown), speed in
    0.1 km/h and travelled distance in metres; negative speed or distance
    means it could not be measured.  ``course`` is only present in the
    legacy layout.
    """

    TAG: ClassVar[str] = "WAYP"
    grammar = staticmethod(grammars.decode_waypoint)

    format: str = ""
    departure_time: int = 0
    arrival_time: int = 0
    kind: int = 0
    latitude: int = 0
    longitude: int = 0
    satellites: int = 0
    travelled_distance: int = 0
    speed: int = 0
    stop_identifier: str = ""
    course: Optional[int] = None

    @property
    def timestamp(self) -> int:
        return self.arrival_time

    @property
    def is_legacy(self) -> bool:
        return self.format == grammars.WAYPOINT_FORMAT_LEGACY

    @property
    def latitude_degrees(self) -> Optional[float]:
        return self.latitude / 600000.0 if self.latitude else None

    @property
    def longitude_degrees(self) -> Optional[float]:
        return self.longitude / 600000.0 if self.longitude else None

    @property
    def speed_kmh(self) -> Optional[float]:
        return self.speed / 10.0 if self.speed >= 0 else None

    def describe(self) -> str:
        return (
            f"WAYP ts={self.arrival_time} kind={self.kind} "
            f"pos=({self.latitude_degrees}, {self.longitude_degrees}) "
            f"speed={self.speed_kmh} stop={self.stop_identifier!r}"
        )


@dataclass
class FleetTelemetryBlock(Block):
    TAG: ClassVar[str] = "rFMS"
    grammar = staticmethod(grammars.decode_fleet_telemetry)

    timestamp: int = 0
    protocol_type: int = grammars.FMS_UNKNOWN
    message: Optional[str] = None
    raw_fms_data: bytes = b""
    values: Dict[str, Optional[str]] = field(default_factory=dict)

    def get_value(self, key: str) -> Optional[str]:
        """Reported value for *key*; ``None`` when absent or not available."""
        return self.values.get(key)

    def get_float(self, key: str) -> Optional[float]:
        value = self.get_value(key)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    @property
    def vehicle_speed(self) -> Optional[float]:
        return self.get_float("VEH_SPEED")

    @property
    def fuel_level(self) -> Optional[float]:
        return self.get_float("FUEL_LEV")

    @property
    def fuel_consumption(self) -> Optional[float]:
        return self.get_float("FUEL_C")

    @property
    def distance(self) -> Optional[float]:
        return self.get_float("DISTANCE")

    def describe(self) -> str:
        return f"rFMS ts={self.timestamp} type={self.protocol_type} values={len(self.values)}"


@dataclass
class ExchangeTimeBlock(Block):
    TAG: ClassVar[str] = "rPET"
    grammar = staticmethod(grammars.decode_exchange_times)

    timestamp: int = 0
    doors: List[DoorExchangeTime] = field(default_factory=list)

    def describe(self) -> str:
        return f"rPET ts={self.timestamp} doors={len(self.doors)}"


BUILTIN_BLOCKS = (
    FileHeaderBlock,
    FileEndBlock,
    PassengerCountBlock,
    DoorConfigurationBlock,
    DiagnosticBlock,
    IntermediateCountBlock,
    TrainFormationBlock,
    EventBlock,
    PowerDownBlock,
    PassengerInfoBlock,
    WaypointBlock,
    FleetTelemetryBlock,
    ExchangeTimeBlock,
)
