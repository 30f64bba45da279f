from dataclasses import dataclass
from typing import ClassVar

import pytest

from dlx3.analysis import (
    Block,
    BlockRegistry,
    PassengerCountBlock,
    UnknownBlock,
    WarningKind,
    default_registry,
    encode_frame,
    parse_bytes,
)


@dataclass
class ExtraBlock(Block):
    TAG: ClassVar[str] = "XTRA"
    grammar = staticmethod(lambda payload, max_string_length: ({"value": payload[0]}, []))

    value: int = 0


@dataclass
class BrokenBlock(Block):
    TAG: ClassVar[str] = "CDAT"
    grammar = staticmethod(lambda payload, max_string_length: 1 / 0)


def test_default_registry_has_builtin_tags():
    registry = default_registry()
    assert len(registry) == 13
    assert registry.tags() == sorted([
        "FHDR", "FEND", "CDAT", "CONF", "DIAG", "FSTP", "FORM",
        "EVNT", "PDWN", "PISM", "WAYP", "rFMS", "rPET",
    ])
    assert "rFMS" in registry
    assert "RFMS" not in registry


def test_construct_returns_fresh_instances():
    registry = default_registry()
    first = registry.construct("CDAT")
    second = registry.construct("CDAT")
    assert isinstance(first, PassengerCountBlock)
    assert first is not second
    assert first.doors is not second.doors


def test_construct_unknown_tag():
    assert default_registry().construct("ZZZZ") is None


def test_default_registries_are_independent():
    registry = default_registry()
    registry.unregister("CDAT")
    assert "CDAT" not in registry
    assert "CDAT" in default_registry()


@pytest.mark.parametrize("tag", ["ABC", "ABCDE", "ÄBCD", ""])
def test_register_rejects_bad_tags(tag):
    with pytest.raises(ValueError):
        BlockRegistry().register(tag, ExtraBlock)


def test_register_rejects_non_callable():
    with pytest.raises(TypeError):
        BlockRegistry().register("XTRA", "not callable")


def test_copy_is_independent():
    registry = default_registry()
    clone = registry.copy()
    clone.register("XTRA", ExtraBlock)
    assert "XTRA" in clone
    assert "XTRA" not in registry


def test_custom_block_is_dispatched():
    registry = default_registry()
    registry.register("XTRA", ExtraBlock)
    result = parse_bytes(encode_frame("XTRA", b"\x2a"), registry=registry)
    (block,) = result.blocks
    assert isinstance(block, ExtraBlock)
    assert block.value == 42
    assert block.warnings == []


def test_grammar_exception_becomes_warning():
    registry = default_registry()
    registry.register("CDAT", BrokenBlock)
    data = encode_frame("CDAT", b"\x00" * 6) + encode_frame("FEND", b"")
    result = parse_bytes(data, registry=registry)
    assert result.ok
    assert len(result.blocks) == 2
    assert result.blocks[0].warning_kinds() == [WarningKind.DECODE_ERROR]
    assert "ZeroDivisionError" in result.blocks[0].warnings[0].message


def test_failing_constructor_becomes_unknown_block():
    def broken():
        raise RuntimeError("out of memory")

    registry = default_registry()
    registry.register("CDAT", broken)
    data = encode_frame("CDAT", b"\x00" * 6) + encode_frame("FEND", b"")
    result = parse_bytes(data, registry=registry)
    assert result.ok
    assert len(result.blocks) == 2
    block = result.blocks[0]
    assert isinstance(block, UnknownBlock)
    assert block.type_tag == "CDAT"
    assert block.payload == b"\x00" * 6
    assert block.checksum_valid
    assert block.warning_kinds() == [WarningKind.DECODE_ERROR]
    assert "RuntimeError" in block.warnings[0].message
    assert result.blocks[1].type_tag == "FEND"
