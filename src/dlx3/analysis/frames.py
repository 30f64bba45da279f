"""
DLX3 Frame Reader (Functional Core)

Splits a DLX3 byte stream into frames and dispatches each one to its block
grammar.  A frame on the wire is::

    [4-byte ASCII tag][u16 BE length][length bytes payload][u16 BE CRC]

There is no outer container; the stream ends at end-of-data or, by default,
after the FEND block.

Per frame the reader goes READ_HEADER → READ_PAYLOAD → READ_CHECKSUM →
DISPATCH and loops.  Running out of bytes in any of the first three phases
is fatal: framing after that point cannot be trusted, so parsing stops and
the result carries every block decoded so far plus one ``FrameError``.
Everything else (checksum mismatches, unknown tags, odd payloads) is
recorded as ``DecodeWarning`` data on the block and the loop continues.

Package Location: src/dlx3/analysis/frames.py
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Type, TypeVar, Union

from .blocks import Block, BlockEnvelope, FileEndBlock, FileHeaderBlock, UnknownBlock
from .checksum import frame_checksum
from .errors import (
    DecodeWarning,
    FrameDecodingError,
    FrameError,
    FrameErrorKind,
    TruncatedError,
    WarningKind,
)
from .primitives import MAX_STRING_LENGTH, Cursor
from .registry import BlockRegistry, default_registry

logger = logging.getLogger(__name__)

HEADER_SIZE: int = 6     # tag + u16 length
CHECKSUM_SIZE: int = 2

B = TypeVar("B", bound=Block)


# ---------------------------------------------------------------------------
# Configuration and result types
# ---------------------------------------------------------------------------

@dataclass
class ReaderConfig:
    """
    Parsing policy.

    Attributes:
        strict_checksum: Treat a CRC mismatch as fatal instead of a block
            warning.  Legacy files often carry stale checksums, so this is
            off by default.
        stop_at_file_end: Stop after the FEND block; any bytes that follow
            are reported as a result-level warning.
        max_string_length: Corruption guard for NUL-terminated strings.
    """

    strict_checksum: bool = False
    stop_at_file_end: bool = True
    max_string_length: int = MAX_STRING_LENGTH


@dataclass
class ParseResult:
    """Decoded blocks in file order, result-level warnings, terminal error."""

    blocks: List[Block] = field(default_factory=list)
    error: Optional[FrameError] = None
    warnings: List[DecodeWarning] = field(default_factory=list)
    bytes_consumed: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def header(self) -> Optional[FileHeaderBlock]:
        return next(iter(self.of_type(FileHeaderBlock)), None)

    def by_tag(self, tag: str) -> List[Block]:
        return [b for b in self.blocks if b.type_tag == tag]

    def of_type(self, block_type: Type[B]) -> List[B]:
        return [b for b in self.blocks if isinstance(b, block_type)]

    def all_warnings(self) -> List[DecodeWarning]:
        """Every block warning in file order, then the result-level ones."""
        collected = [w for b in self.blocks for w in b.warnings]
        return collected + list(self.warnings)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise FrameDecodingError(self.error)


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class FrameReader:
    """
    Decodes a complete DLX3 byte buffer into typed blocks.

    A reader holds only configuration (registry and policy), so one
    instance may be reused for many buffers, and independent instances may
    run concurrently.
    """

    def __init__(
        self,
        registry: Optional[BlockRegistry] = None,
        config: Optional[ReaderConfig] = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else ReaderConfig()

    # ------------------------------------------------------------------
    # Framing
    # ------------------------------------------------------------------

    @staticmethod
    def _read_envelope(cursor: Cursor) -> BlockEnvelope:
        """
        Read one frame at the cursor.

        Raises:
            FrameDecodingError: When the stream ends inside the frame.
        """
        start = cursor.absolute_position

        # READ_HEADER
        if cursor.remaining < HEADER_SIZE:
            raise FrameDecodingError(FrameError(
                FrameErrorKind.TRUNCATED_HEADER,
                start,
                f"{cursor.remaining} bytes left, a frame header needs "
                f"{HEADER_SIZE}",
            ))
        raw_tag = cursor.read_bytes(4)
        length = cursor.u16()
        tag = raw_tag.decode("latin-1")

        # READ_PAYLOAD
        try:
            payload = cursor.read_bytes(length)
        except TruncatedError as exc:
            raise FrameDecodingError(FrameError(
                FrameErrorKind.TRUNCATED_PAYLOAD,
                start,
                f"declared {length} payload bytes, only {exc.available} left",
                tag,
            ))

        # READ_CHECKSUM
        try:
            checksum = cursor.u16()
        except TruncatedError:
            raise FrameDecodingError(FrameError(
                FrameErrorKind.TRUNCATED_CHECKSUM,
                start,
                "stream ends before the checksum trailer",
                tag,
            ))

        return BlockEnvelope(
            type_tag=tag,
            declared_length=length,
            payload=payload,
            checksum=checksum,
            offset=start,
        )

    def iter_envelopes(self, data: Union[bytes, bytearray, memoryview]) -> Iterator[BlockEnvelope]:
        """
        Yield raw envelopes without decoding payloads.

        Raises:
            FrameDecodingError: When the stream ends inside a frame; the
                envelopes before it have already been yielded.
        """
        cursor = Cursor(data)
        while not cursor.at_end:
            yield self._read_envelope(cursor)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def decode_envelope(self, envelope: BlockEnvelope) -> Block:
        """
        Build the typed block for *envelope* (never raises).

        A registered constructor that fails yields an ``UnknownBlock``
        carrying a ``DECODE_ERROR`` warning.
        """
        try:
            block = self.registry.construct(envelope.type_tag)
        except Exception as exc:
            logger.debug(
                f"{envelope.type_tag} constructor failed: {exc}",
                extra={"type_tag": envelope.type_tag, "offset": envelope.offset},
            )
            block = UnknownBlock()
            block.warnings.append(DecodeWarning(
                WarningKind.DECODE_ERROR,
                f"constructor for {envelope.type_tag!r} failed: "
                f"{type(exc).__name__}: {exc}",
                envelope.offset,
            ))
        else:
            if block is None:
                block = UnknownBlock()
                block.warnings.append(DecodeWarning(
                    WarningKind.UNKNOWN_TAG,
                    f"No grammar registered for tag {envelope.type_tag!r}",
                    envelope.offset,
                ))

        block.populate(envelope, self.config.max_string_length)

        expected = frame_checksum(envelope.type_tag.encode("latin-1"), envelope.payload)
        if expected != envelope.checksum:
            block.checksum_valid = False
            block.warnings.append(DecodeWarning(
                WarningKind.CHECKSUM_MISMATCH,
                f"stored CRC 0x{envelope.checksum:04X}, computed 0x{expected:04X}",
                envelope.offset + HEADER_SIZE + envelope.declared_length,
            ))
        return block

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(self, data: Union[bytes, bytearray, memoryview]) -> ParseResult:
        """
        Decode every frame in *data*.

        Args:
            data: The complete contents of a DLX3 file.

        Returns:
            ``ParseResult`` with blocks in file order.  ``result.error`` is
            set when parsing stopped early; the blocks before the fault are
            still returned.
        """
        result = ParseResult()
        cursor = Cursor(data)

        while not cursor.at_end:
            try:
                envelope = self._read_envelope(cursor)
            except FrameDecodingError as exc:
                result.error = exc.error
                break

            block = self.decode_envelope(envelope)

            if not block.checksum_valid and self.config.strict_checksum:
                result.error = FrameError(
                    FrameErrorKind.CHECKSUM_MISMATCH,
                    envelope.offset,
                    f"checksum mismatch (stored 0x{envelope.checksum:04X})",
                    envelope.type_tag,
                )
                break

            for warning in block.warnings:
                logger.debug(
                    f"{block.type_tag}@{block.offset}: {warning}",
                    extra={
                        "type_tag": block.type_tag,
                        "offset": block.offset,
                        "warning": warning.kind.value,
                    },
                )

            result.blocks.append(block)
            result.bytes_consumed = cursor.absolute_position

            if isinstance(block, FileEndBlock) and self.config.stop_at_file_end:
                if cursor.remaining:
                    result.warnings.append(DecodeWarning(
                        WarningKind.TRAILING_BYTES,
                        f"{cursor.remaining} bytes after FEND were not decoded",
                        cursor.absolute_position,
                    ))
                break

        if result.error is not None:
            logger.warning(
                f"DLX3 parse stopped: {result.error}",
                extra={
                    "error": result.error.kind.value,
                    "offset": result.error.offset,
                    "blocks_decoded": len(result.blocks),
                },
            )

        return result


def parse_bytes(
    data: Union[bytes, bytearray, memoryview],
    registry: Optional[BlockRegistry] = None,
    config: Optional[ReaderConfig] = None,
) -> ParseResult:
    """Convenience wrapper: ``FrameReader(registry, config).read(data)``."""
    return FrameReader(registry, config).read(data)


def encode_frame(type_tag: str, payload: bytes, checksum: Optional[int] = None) -> bytes:
    """
    Serialise one frame, computing the CRC unless *checksum* is given.

    Useful for building fixtures and for re-emitting audited blocks.
    """
    tag = type_tag.encode("latin-1")
    if len(tag) != 4:
        raise ValueError(f"Block tag must be 4 bytes: {type_tag!r}")
    if len(payload) > 0xFFFF:
        raise ValueError(f"Payload of {len(payload)} bytes exceeds u16 length")
    if checksum is None:
        checksum = frame_checksum(tag, payload)
    return (
        tag
        + len(payload).to_bytes(2, "big")
        + bytes(payload)
        + checksum.to_bytes(2, "big")
    )
