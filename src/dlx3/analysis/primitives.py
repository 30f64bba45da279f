"""
DLX3 Primitive Decoder (Functional Core)

A ``Cursor`` walks a window ``[start, end)`` of a byte buffer and provides
the bounds-checked reads every grammar is built from:

- fixed-width integers (1/2/4/8 bytes, signed or unsigned, either byte order)
- NUL-terminated Latin-1 strings with a corruption guard
- raw byte slices

A read either succeeds and advances the cursor, or raises ``TruncatedError``
and leaves the position untouched.  The cursor never looks past ``end`` even
when the underlying buffer is longer, so a payload cursor cannot bleed into
the following frame.

Package Location: src/dlx3/analysis/primitives.py
"""

import struct
from typing import Dict, List, Optional, Tuple, Union

from .errors import DecodeWarning, TruncatedError, WarningKind

# Hard cap for NUL-terminated strings; longer runs indicate corruption.
MAX_STRING_LENGTH: int = 1000

_INT_CODES: Dict[Tuple[int, bool], str] = {
    (1, False): "B",
    (1, True): "b",
    (2, False): "H",
    (2, True): "h",
    (4, False): "I",
    (4, True): "i",
    (8, False): "Q",
    (8, True): "q",
}

_BYTEORDER_PREFIX: Dict[str, str] = {"big": ">", "little": "<"}

BytesLike = Union[bytes, bytearray, memoryview]


class Cursor:
    """Bounds-checked sequential reader over a window of a byte buffer."""

    def __init__(
        self,
        buffer: BytesLike,
        start: int = 0,
        end: Optional[int] = None,
    ):
        self._view = memoryview(buffer)
        if end is None:
            end = len(self._view)
        if not 0 <= start <= end <= len(self._view):
            raise ValueError(
                f"Invalid cursor window [{start}, {end}) over "
                f"{len(self._view)} bytes"
            )
        self._start = start
        self._end = end
        self._pos = start
        self.warnings: List[DecodeWarning] = []

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def position(self) -> int:
        """Offset relative to the start of the window."""
        return self._pos - self._start

    @property
    def absolute_position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return self._end - self._pos

    @property
    def at_end(self) -> bool:
        return self._pos >= self._end

    def seek(self, position: int) -> None:
        """Move to *position* (relative to the window start)."""
        if not 0 <= position <= self._end - self._start:
            raise ValueError(f"Seek position {position} outside window")
        self._pos = self._start + position

    def _require(self, width: int) -> None:
        if self.remaining < width:
            raise TruncatedError(self._pos, width, self.remaining)

    # ------------------------------------------------------------------
    # Integers
    # ------------------------------------------------------------------

    def read_int(
        self,
        width: int,
        signed: bool = False,
        byteorder: str = "big",
    ) -> int:
        """
        Read a fixed-width integer.

        Args:
            width: Size in bytes (1, 2, 4 or 8).
            signed: Two's-complement interpretation when ``True``.
            byteorder: ``'big'`` or ``'little'``.

        Raises:
            ValueError: For an unsupported width or byte order.
            TruncatedError: If fewer than *width* bytes remain.
        """
        try:
            code = _BYTEORDER_PREFIX[byteorder] + _INT_CODES[(width, signed)]
        except KeyError:
            raise ValueError(
                f"Unsupported integer layout: width={width}, "
                f"byteorder={byteorder!r}"
            )
        self._require(width)
        (value,) = struct.unpack_from(code, self._view, self._pos)
        self._pos += width
        return value

    def u8(self) -> int:
        return self.read_int(1)

    def u16(self, byteorder: str = "big") -> int:
        return self.read_int(2, byteorder=byteorder)

    def u32(self, byteorder: str = "big") -> int:
        return self.read_int(4, byteorder=byteorder)

    def i16(self, byteorder: str = "big") -> int:
        return self.read_int(2, signed=True, byteorder=byteorder)

    def i32(self, byteorder: str = "big") -> int:
        return self.read_int(4, signed=True, byteorder=byteorder)

    # ------------------------------------------------------------------
    # Byte slices and strings
    # ------------------------------------------------------------------

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("count must be non-negative")
        self._require(count)
        chunk = self._view[self._pos:self._pos + count].tobytes()
        self._pos += count
        return chunk

    def read_rest(self) -> bytes:
        return self.read_bytes(self.remaining)

    def read_cstring(self, max_length: int = MAX_STRING_LENGTH) -> str:
        """
        Read a NUL-terminated string decoded as Latin-1.

        Accumulates until a zero byte (consumed, not returned) or the end of
        the window.  When *max_length* bytes have been gathered without a
        terminator, accumulation stops there, a ``STRING_TOO_LONG`` warning
        is appended to ``self.warnings`` and the gathered bytes are returned.
        At the end of the window the result is an empty string.
        """
        begin = self._pos
        # One extra byte so a terminator right at the cap still counts.
        window = self._view[begin:min(self._end, begin + max_length + 1)]
        chunk = window.tobytes()
        nul = chunk.find(b"\x00")

        if nul >= 0:
            self._pos = begin + nul + 1
            return chunk[:nul].decode("latin-1")

        chunk = chunk[:max_length]
        limit = begin + len(chunk)
        self._pos = limit
        if limit < self._end:
            self.warnings.append(DecodeWarning(
                WarningKind.STRING_TOO_LONG,
                f"String exceeds {max_length} bytes; truncated",
                begin - self._start,
            ))
        return chunk.decode("latin-1")
