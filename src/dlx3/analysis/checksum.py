"""
CRC-16/CCITT-FALSE Checksum (Functional Core)

Every DLX3 frame ends with a big-endian CRC computed over the 4-byte type
tag followed by the payload.  The variant is CCITT-FALSE:

    poly 0x1021, init 0xFFFF, MSB-first, no reflection, no final XOR

The lookup table is built once at import and stored as a tuple.

Package Location: src/dlx3/analysis/checksum.py
"""

from typing import Tuple, Union

POLYNOMIAL: int = 0x1021
INITIAL_VALUE: int = 0xFFFF


def _build_table() -> Tuple[int, ...]:
    table = []
    for i in range(256):
        value = 0
        temp = i << 8
        for _ in range(8):
            if (value ^ temp) & 0x8000:
                value = ((value << 1) ^ POLYNOMIAL) & 0xFFFF
            else:
                value = (value << 1) & 0xFFFF
            temp <<= 1
        table.append(value)
    return tuple(table)


_TABLE: Tuple[int, ...] = _build_table()


def crc16(data: Union[bytes, bytearray, memoryview]) -> int:
    """
    Compute CRC-16/CCITT-FALSE over *data*.

    Args:
        data: Any bytes-like object.

    Returns:
        Unsigned 16-bit checksum.

    Example:
        >>> hex(crc16(b"123456789"))
        '0x29b1'
    """
    crc = INITIAL_VALUE
    for byte in bytes(data):
        crc = ((crc << 8) & 0xFFFF) ^ _TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc


def frame_checksum(type_tag: Union[str, bytes], payload: bytes) -> int:
    """Checksum of a frame: the type tag bytes followed by the payload."""
    if isinstance(type_tag, str):
        type_tag = type_tag.encode("latin-1")
    return crc16(bytes(type_tag) + bytes(payload))


def verify(type_tag: Union[str, bytes], payload: bytes, expected: int) -> bool:
    return frame_checksum(type_tag, payload) == expected
