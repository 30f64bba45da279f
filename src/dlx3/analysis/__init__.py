"""
DLX3 Analysis Package (Functional Core)

Pure decoding of DLX3 byte buffers.  Nothing here opens files or prints;
every function accepts bytes (or decoded blocks) and returns data.

Modules:
- checksum:   CRC-16/CCITT-FALSE frame checksum
- primitives: bounds-checked cursor reads
- errors:     fatal FrameError vs. per-block DecodeWarning
- records:    repeating sub-records (door counts, diagnostics, ...)
- grammars:   one pure decode function per block type
- blocks:     block variant dataclasses
- registry:   tag -> block constructor table
- frames:     frame reader / dispatch loop
- catalogs:   event and diagnostic code descriptions
"""

from .checksum import crc16, frame_checksum, verify

from .errors import (
    Dlx3Error,
    TruncatedError,
    FrameDecodingError,
    WarningKind,
    FrameErrorKind,
    DecodeWarning,
    FrameError,
)

from .primitives import Cursor, MAX_STRING_LENGTH

from .records import (
    DoorCount,
    DoorConfiguration,
    DiagnosticMessage,
    TrainCar,
    DoorExchangeTime,
)

from .blocks import (
    BlockEnvelope,
    Block,
    UnknownBlock,
    FileHeaderBlock,
    FileEndBlock,
    PassengerCountBlock,
    IntermediateCountBlock,
    DoorConfigurationBlock,
    DiagnosticBlock,
    TrainFormationBlock,
    EventBlock,
    PowerDownBlock,
    PassengerInfoBlock,
    WaypointBlock,
    FleetTelemetryBlock,
    ExchangeTimeBlock,
    BUILTIN_BLOCKS,
)

from .registry import BlockRegistry, default_registry

from .frames import (
    ReaderConfig,
    ParseResult,
    FrameReader,
    parse_bytes,
    encode_frame,
)

__all__ = [
    # Checksum
    'crc16',
    'frame_checksum',
    'verify',
    # Errors
    'Dlx3Error',
    'TruncatedError',
    'FrameDecodingError',
    'WarningKind',
    'FrameErrorKind',
    'DecodeWarning',
    'FrameError',
    # Primitives
    'Cursor',
    'MAX_STRING_LENGTH',
    # Records
    'DoorCount',
    'DoorConfiguration',
    'DiagnosticMessage',
    'TrainCar',
    'DoorExchangeTime',
    # Blocks
    'BlockEnvelope',
    'Block',
    'UnknownBlock',
    'FileHeaderBlock',
    'FileEndBlock',
    'PassengerCountBlock',
    'IntermediateCountBlock',
    'DoorConfigurationBlock',
    'DiagnosticBlock',
    'TrainFormationBlock',
    'EventBlock',
    'PowerDownBlock',
    'PassengerInfoBlock',
    'WaypointBlock',
    'FleetTelemetryBlock',
    'ExchangeTimeBlock',
    'BUILTIN_BLOCKS',
    # Registry
    'BlockRegistry',
    'default_registry',
    # Frames
    'ReaderConfig',
    'ParseResult',
    'FrameReader',
    'parse_bytes',
    'encode_frame',
]
