import pytest

from dlx3.analysis import crc16, frame_checksum, verify


def _bitwise_crc(data: bytes) -> int:
    crc = 0xFFFF
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def test_check_value():
    assert crc16(b"123456789") == 0x29B1


def test_single_byte():
    assert crc16(b"A") == 0xB915


def test_empty_input_is_initial_value():
    assert crc16(b"") == 0xFFFF


def test_file_end_tag_value():
    assert crc16(b"FEND") == 0x1D1B
    assert frame_checksum("FEND", b"") == 0x1D1B


@pytest.mark.parametrize("data", [
    b"FEND",
    b"CDAT\x01\x02\x03\x04\x00\x00",
    bytes(range(256)),
    b"\x00" * 64,
    b"\xff" * 17,
])
def test_table_matches_bitwise_reference(data):
    assert crc16(data) == _bitwise_crc(data)


def test_accepts_bytearray_and_memoryview():
    data = b"rFMS payload"
    assert crc16(bytearray(data)) == crc16(data)
    assert crc16(memoryview(data)) == crc16(data)


def test_frame_checksum_covers_tag_then_payload():
    assert frame_checksum("FEND", b"") == crc16(b"FEND")
    assert frame_checksum(b"CDAT", b"\x01\x02") == crc16(b"CDAT\x01\x02")


def test_verify():
    value = frame_checksum("EVNT", b"\x00\x00\x00\x01\x0a")
    assert verify("EVNT", b"\x00\x00\x00\x01\x0a", value)
    assert not verify("EVNT", b"\x00\x00\x00\x01\x0a", value ^ 0x0001)
