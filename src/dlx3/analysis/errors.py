"""
DLX3 Error and Warning Types (Functional Core)

Two tiers of problems are distinguished while decoding a DLX3 stream:

Fatal (frame-level)
    The stream ends inside a frame header, payload or checksum trailer.
    Framing after that point cannot be trusted, so the reader stops and
    returns what it has decoded so far together with a ``FrameError``.

Non-fatal (block-level)
    Anything a grammar is expected to tolerate: short payloads, misaligned
    tails, stale checksums, unknown tags.  These are recorded as
    ``DecodeWarning`` values attached to the affected block and never
    interrupt the frame loop.

Package Location: src/dlx3/analysis/errors.py
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Dlx3Error(Exception):
    """Base class for all DLX3 decoding exceptions."""
    pass


class TruncatedError(Dlx3Error):
    """
    Raised by the primitive decoder when a read needs more bytes than remain.

    Attributes:
        offset: Absolute buffer position where the read was attempted.
        needed: Number of bytes the read required.
        available: Number of bytes that were left before the boundary.
    """

    def __init__(self, offset: int, needed: int, available: int):
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"Truncated at offset {offset}: needed {needed} bytes, "
            f"{available} available"
        )


class FrameDecodingError(Dlx3Error):
    """
    Raised by ``ParseResult.raise_for_error`` for callers that prefer
    exceptions over inspecting the returned ``FrameError``.
    """

    def __init__(self, error: "FrameError"):
        self.error = error
        super().__init__(str(error))


class WarningKind(str, Enum):
    TOO_SHORT = "too_short"
    MISALIGNED_TAIL = "misaligned_tail"
    TRAILING_BYTES = "trailing_bytes"
    UNKNOWN_TAG = "unknown_tag"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    MALFORMED_FIELD = "malformed_field"
    STRING_TOO_LONG = "string_too_long"
    UNEXPECTED_VALUE = "unexpected_value"
    DROPPED_RECORD = "dropped_record"
    LEGACY_FORMAT = "legacy_format"
    DECODE_ERROR = "decode_error"


class FrameErrorKind(str, Enum):
    TRUNCATED_HEADER = "truncated_header"
    TRUNCATED_PAYLOAD = "truncated_payload"
    TRUNCATED_CHECKSUM = "truncated_checksum"
    CHECKSUM_MISMATCH = "checksum_mismatch"


@dataclass(frozen=True)
class DecodeWarning:
    """
    A non-fatal problem found while decoding one block.

    ``offset`` is relative to the start of the block payload when the
    warning comes from a grammar, and absolute within the stream when it is
    attached by the frame reader.
    """

    kind: WarningKind
    message: str
    offset: Optional[int] = None

    def __str__(self) -> str:
        where = f" @{self.offset}" if self.offset is not None else ""
        return f"{self.kind.value}{where}: {self.message}"


@dataclass(frozen=True)
class FrameError:
    """The single terminal error of a parse: what went wrong and where."""

    kind: FrameErrorKind
    offset: int
    message: str
    type_tag: Optional[str] = None

    def __str__(self) -> str:
        tag = f" [{self.type_tag}]" if self.type_tag else ""
        return f"{self.kind.value} at offset {self.offset}{tag}: {self.message}"
