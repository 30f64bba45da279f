import logging
import struct

import pytest

from dlx3.analysis import encode_frame

HEADER_TIME = 1700000000

FHDR_PAYLOAD = (
    struct.pack(">BIIB", 68, HEADER_TIME, HEADER_TIME - 10000, 1)
    + b"Europe/Berlin\x00PCU-9\x00SN123\x00ACME\x00BUS-7\x00"
)
CDAT_PAYLOAD = (
    struct.pack(">IH", HEADER_TIME + 100, 25)
    + struct.pack(">IBhhh", 42, 1, 5, 3, 0)
    + struct.pack(">IBhhh", 43, 2, 1, 4, 1)
)
WAYP_PAYLOAD = (
    struct.pack(">IIBiiBhh", HEADER_TIME + 200, HEADER_TIME + 150, 1,
                30000000, 8400000, 9, 1500, 523)
    + b"Stop A\x00"
)
EVNT_PAYLOAD = struct.pack(">IB", HEADER_TIME + 300, 10) + b"\x01"
DIAG_PAYLOAD = (
    struct.pack(">IBBBB", HEADER_TIME + 400, 20, 0, 8, 2)
    + b"addr:12345,inst:2,info:blocked\x00"
)


@pytest.fixture
def sample_bytes():
    """A small well-formed file: FHDR, CDAT, WAYP, EVNT, DIAG, FEND."""
    return b"".join([
        encode_frame("FHDR", FHDR_PAYLOAD),
        encode_frame("CDAT", CDAT_PAYLOAD),
        encode_frame("WAYP", WAYP_PAYLOAD),
        encode_frame("EVNT", EVNT_PAYLOAD),
        encode_frame("DIAG", DIAG_PAYLOAD),
        encode_frame("FEND", b""),
    ])


@pytest.fixture
def sample_file(tmp_path, sample_bytes):
    path = tmp_path / "sample.dlx3"
    path.write_bytes(sample_bytes)
    return path


@pytest.fixture(autouse=True)
def reset_dlx3_logger():
    """Drop handlers installed by configure_logging between tests."""
    yield
    logger = logging.getLogger("dlx3")
    for handler in list(logger.handlers):
        if getattr(handler, "_dlx3_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
