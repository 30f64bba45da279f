"""
DLX3 File Reader and Tabular Views (Imperative Shell)

Reads DLX3 files from disk and reshapes decoded blocks into pandas
DataFrames for analysis and export.

Package Location: src/dlx3/data/reader.py

Two layers are provided:

1. File access (read_dlx3_file):
   Reads the whole file and runs the Functional Core ``FrameReader`` over
   it.  Returns the ``ParseResult`` unchanged; nothing is dropped.

2. Tabular views (get_*_dataframe):
   Flatten selected block types into one row per sub-record.  Each accepts
   a ``ParseResult`` or any iterable of blocks and returns an empty
   DataFrame with the documented columns when nothing matches.

Timezone note:
   DLX3 timestamps are UTC epoch seconds.  Views keep them as integers
   unless *timezone* is supplied, in which case they become tz-aware
   Timestamps (0, meaning "not available", becomes NaT).  Pass
   ``timezone='header'`` to use the zone named by the file's FHDR block.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from ..analysis import catalogs
from ..analysis.blocks import (
    Block,
    DiagnosticBlock,
    EventBlock,
    ExchangeTimeBlock,
    FleetTelemetryBlock,
    IntermediateCountBlock,
    PassengerCountBlock,
    WaypointBlock,
)
from ..analysis.frames import FrameReader, ParseResult, ReaderConfig
from ..analysis.registry import BlockRegistry
from ..utils.timezone import header_timezone, resolve_pytz

logger = logging.getLogger(__name__)

BlockSource = Union[ParseResult, Iterable[Block]]

_SUMMARY_COLUMNS: List[str] = [
    'offset', 'type_tag', 'declared_length', 'checksum', 'checksum_valid',
    'warning_count', 'warnings', 'description',
]
_DOOR_COUNT_COLUMNS: List[str] = [
    'timestamp', 'type_tag', 'exchange_time', 'device_id', 'instance',
    'boarding', 'alighting', 'uncertain',
]
_WAYPOINT_COLUMNS: List[str] = [
    'arrival_time', 'departure_time', 'kind', 'latitude', 'longitude',
    'speed_kmh', 'satellites', 'travelled_distance', 'stop_identifier',
    'format',
]
_EVENT_COLUMNS: List[str] = [
    'timestamp', 'event_type', 'description', 'event_data',
]
_DIAGNOSTIC_COLUMNS: List[str] = [
    'timestamp', 'module_id', 'submodule_id', 'message_id', 'category',
    'category_description', 'description', 'message', 'device_id',
    'door_instance', 'additional_info',
]
_EXCHANGE_COLUMNS: List[str] = [
    'timestamp', 'device_id', 'instance', 'first_passenger_movement',
    'last_passenger_movement', 'first_opening', 'last_closing',
    'passenger_exchange_seconds', 'door_open_seconds',
]
_TELEMETRY_COLUMNS: List[str] = [
    'timestamp', 'protocol_type', 'key', 'value',
]


# ---------------------------------------------------------------------------
# Public API – file access
# ---------------------------------------------------------------------------

def read_dlx3_file(
    path: Union[str, Path],
    registry: Optional[BlockRegistry] = None,
    config: Optional[ReaderConfig] = None,
) -> ParseResult:
    """
    Read and decode a DLX3 file.

    Args:
        path: Path to the ``.dlx3`` file.
        registry: Block registry; the built-in 13 types when ``None``.
        config: Reader policy (checksum strictness, FEND handling).

    Returns:
        ``ParseResult`` with every decoded block.  A truncated file still
        returns the blocks before the fault; check ``result.error``.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    path = Path(path)
    data = path.read_bytes()

    result = FrameReader(registry, config).read(data)

    tag_counts = Counter(b.type_tag for b in result.blocks)
    logger.info(
        f"Decoded {len(result.blocks)} blocks from {path.name}",
        extra={
            "file": str(path),
            "size": len(data),
            "blocks": dict(tag_counts),
            "warnings": len(result.all_warnings()),
            "error": result.error.kind.value if result.error else None,
        },
    )
    return result


# ---------------------------------------------------------------------------
# Public API – tabular views
# ---------------------------------------------------------------------------

def get_block_summary_dataframe(source: BlockSource) -> pd.DataFrame:
    """
    One row per block: envelope fields plus warning counts.

    Returns:
        DataFrame with columns [offset, type_tag, declared_length, checksum,
        checksum_valid, warning_count, warnings, description].
    """
    rows = [
        {
            'offset': block.offset,
            'type_tag': block.type_tag,
            'declared_length': block.declared_length,
            'checksum': block.checksum,
            'checksum_valid': block.checksum_valid,
            'warning_count': len(block.warnings),
            'warnings': '; '.join(str(w) for w in block.warnings),
            'description': block.describe(),
        }
        for block in _iter_blocks(source)
    ]
    return _frame(rows, _SUMMARY_COLUMNS)


def get_door_counts_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
    include_intermediate: bool = True,
) -> pd.DataFrame:
    """
    Flatten CDAT (and optionally FSTP) door counters.

    Args:
        source: ParseResult or iterable of blocks.
        timezone: Optional pytz zone name, or ``'header'``.
        include_intermediate: Include FSTP intermediate counts.

    Returns:
        DataFrame with columns [timestamp, type_tag, exchange_time,
        device_id, instance, boarding, alighting, uncertain].
        ``exchange_time`` is NaN for FSTP rows.
    """
    wanted = (PassengerCountBlock, IntermediateCountBlock) if include_intermediate \
        else (PassengerCountBlock,)

    rows = []
    for block in _iter_blocks(source):
        if not isinstance(block, wanted):
            continue
        exchange_time = getattr(block, 'exchange_time', None)
        for door in block.doors:
            rows.append({
                'timestamp': block.timestamp,
                'type_tag': block.type_tag,
                'exchange_time': exchange_time,
                'device_id': door.device_id,
                'instance': door.instance,
                'boarding': door.boarding,
                'alighting': door.alighting,
                'uncertain': door.uncertain,
            })

    df = _frame(rows, _DOOR_COUNT_COLUMNS)
    return _localize(df, ['timestamp'], timezone, source)


def get_waypoints_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
) -> pd.DataFrame:
    """
    One row per WAYP block, positions converted to decimal degrees.

    Returns:
        DataFrame with columns [arrival_time, departure_time, kind,
        latitude, longitude, speed_kmh, satellites, travelled_distance,
        stop_identifier, format].  Unknown positions and unmeasured speeds
        are NaN.
    """
    rows = [
        {
            'arrival_time': block.arrival_time,
            'departure_time': block.departure_time,
            'kind': block.kind,
            'latitude': block.latitude_degrees,
            'longitude': block.longitude_degrees,
            'speed_kmh': block.speed_kmh,
            'satellites': block.satellites,
            'travelled_distance': block.travelled_distance,
            'stop_identifier': block.stop_identifier,
            'format': block.format,
        }
        for block in _iter_blocks(source)
        if isinstance(block, WaypointBlock)
    ]
    df = _frame(rows, _WAYPOINT_COLUMNS)
    for col in ('latitude', 'longitude', 'speed_kmh'):
        df[col] = pd.to_numeric(df[col], errors='coerce')
    return _localize(df, ['arrival_time', 'departure_time'], timezone, source)


def get_events_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
) -> pd.DataFrame:
    """
    One row per EVNT block with the catalog description of its type.

    Returns:
        DataFrame with columns [timestamp, event_type, description,
        event_data] where ``event_data`` is a hex string.
    """
    rows = [
        {
            'timestamp': block.timestamp,
            'event_type': block.event_type,
            'description': catalogs.event_description(block.event_type),
            'event_data': block.event_data.hex(),
        }
        for block in _iter_blocks(source)
        if isinstance(block, EventBlock)
    ]
    df = _frame(rows, _EVENT_COLUMNS)
    return _localize(df, ['timestamp'], timezone, source)


def get_diagnostics_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
) -> pd.DataFrame:
    """
    One row per diagnostic message across all DIAG blocks.

    Returns:
        DataFrame with columns [timestamp, module_id, submodule_id,
        message_id, category, category_description, description, message,
        device_id, door_instance, additional_info].
    """
    rows = []
    for block in _iter_blocks(source):
        if not isinstance(block, DiagnosticBlock):
            continue
        for msg in block.messages:
            rows.append({
                'timestamp': msg.timestamp,
                'module_id': msg.module_id,
                'submodule_id': msg.submodule_id,
                'message_id': msg.message_id,
                'category': msg.category,
                'category_description': catalogs.category_description(msg.category),
                'description': catalogs.message_description(
                    msg.module_id, msg.submodule_id, msg.message_id
                ),
                'message': msg.message,
                'device_id': msg.device_id,
                'door_instance': msg.door_instance,
                'additional_info': msg.additional_info,
            })
    df = _frame(rows, _DIAGNOSTIC_COLUMNS)
    return _localize(df, ['timestamp'], timezone, source)


def get_exchange_times_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
) -> pd.DataFrame:
    """
    One row per door of every rPET block.

    Returns:
        DataFrame with columns [timestamp, device_id, instance,
        first_passenger_movement, last_passenger_movement, first_opening,
        last_closing, passenger_exchange_seconds, door_open_seconds].
    """
    rows = []
    for block in _iter_blocks(source):
        if not isinstance(block, ExchangeTimeBlock):
            continue
        for door in block.doors:
            rows.append({
                'timestamp': block.timestamp,
                'device_id': door.device_id,
                'instance': door.instance,
                'first_passenger_movement': door.first_passenger_movement,
                'last_passenger_movement': door.last_passenger_movement,
                'first_opening': door.first_opening,
                'last_closing': door.last_closing,
                'passenger_exchange_seconds': door.passenger_exchange_seconds,
                'door_open_seconds': door.door_open_seconds,
            })
    df = _frame(rows, _EXCHANGE_COLUMNS)
    return _localize(
        df,
        ['timestamp', 'first_passenger_movement', 'last_passenger_movement',
         'first_opening', 'last_closing'],
        timezone,
        source,
    )


def get_telemetry_dataframe(
    source: BlockSource,
    timezone: Optional[str] = None,
) -> pd.DataFrame:
    """
    Long-format rFMS values: one row per (block, key).

    Values stay strings; ``None`` marks a value the vehicle reported as
    not available.
    """
    rows = []
    for block in _iter_blocks(source):
        if not isinstance(block, FleetTelemetryBlock):
            continue
        for key, value in block.values.items():
            rows.append({
                'timestamp': block.timestamp,
                'protocol_type': block.protocol_type,
                'key': key,
                'value': value,
            })
    df = _frame(rows, _TELEMETRY_COLUMNS)
    return _localize(df, ['timestamp'], timezone, source)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _iter_blocks(source: BlockSource) -> Iterable[Block]:
    if isinstance(source, ParseResult):
        return source.blocks
    return source


def _frame(rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def _localize(
    df: pd.DataFrame,
    columns: List[str],
    timezone: Optional[str],
    source: BlockSource,
) -> pd.DataFrame:
    """
    Convert epoch-second columns to tz-aware Timestamps when requested.

    ``timezone='header'`` resolves the zone from the source's FHDR block
    (UTC when the source is not a ParseResult or has no header).
    """
    if not timezone:
        return df

    if timezone == 'header':
        name = header_timezone(source) if isinstance(source, ParseResult) else None
        zone = resolve_pytz(name)
    else:
        zone = resolve_pytz(timezone)

    df = df.copy()
    for col in columns:
        if col not in df.columns:
            continue
        seconds = pd.to_numeric(df[col], errors='coerce')
        seconds = seconds.where(seconds != 0)
        df[col] = (
            pd.to_datetime(seconds, unit='s', utc=True)
            .dt.tz_convert(zone)
        )
    return df
