"""Tests for binary reading and geometry entity decoding."""

import struct
import sys

import pytest

import prpscene
import scenetest
from prpscene import BinaryReader, GeomEntity


def test_binary_reader_values():
    data = struct.pack("<BHIif", 7, 0x1234, 0xDEADBEEF, -5, 1.5) + b"name\0rest"
    reader = BinaryReader(data)
    assert reader.read_u8() == 7
    assert reader.read_u16() == 0x1234
    assert reader.read_u32() == 0xDEADBEEF
    assert reader.read_i32() == -5
    assert reader.read_f32() == 1.5
    assert reader.read_cstring() == "name"
    assert reader.read_bytes(4) == b"rest"
    assert reader.remaining() == 0


def test_binary_reader_truncation():
    reader = BinaryReader(b"\x01\x02")
    with pytest.raises(prpscene.DecodeError):
        reader.read_u32()
    assert reader.tell() == 0
    with pytest.raises(prpscene.DecodeError):
        reader.seek(3)
    with pytest.raises(prpscene.DecodeError):
        BinaryReader(b"abc").read_cstring()


def test_binary_reader_at_is_independent():
    reader = BinaryReader(b"\0one\0two\0")
    other = reader.at(5)
    assert other.read_cstring() == "two"
    assert reader.tell() == 0


def test_deserialize_record():
    buf = BinaryReader(b"\0door_01\0")
    data = scenetest.record(
        1, type_id=0x1001, instance_id=42, primitive_id=3, coli_bits=0x80,
        reserved=0xAAAA, unk34=b"\x01\x02\x03\x04")
    gms = BinaryReader(data + b"tail")

    entity = GeomEntity()
    prpscene.deserialize(entity, 2, gms, buf)

    assert entity.name == "door_01"
    assert entity.type_id == 0x1001
    assert entity.instance_id == 42
    assert entity.primitive_id == 3
    assert entity.coli_bits == 0x80
    assert entity.depth_level == 2
    assert entity.unk34 == b"\x01\x02\x03\x04"
    assert entity.reserved[0x04] == 0xAAAA
    assert entity.reserved[0x3C] == 0xAAAA
    assert len(entity.reserved) == 10
    assert gms.tell() == prpscene.RECORD_SIZE


def test_deserialize_truncated_record():
    gms = BinaryReader(scenetest.record(1)[:0x30])
    with pytest.raises(prpscene.DecodeError):
        prpscene.deserialize(GeomEntity(), 0, gms, BinaryReader(b"\0x\0"))


def test_deserialize_bad_name_offset():
    gms = BinaryReader(scenetest.record(100))
    with pytest.raises(prpscene.DecodeError):
        prpscene.deserialize(GeomEntity(), 0, gms, BinaryReader(b"\0x\0"))


def test_default_entity_is_root():
    entity = GeomEntity()
    assert entity.parent_geom_index == GeomEntity.INVALID_PARENT == 0xFFFFFFEE
    assert not entity.has_parent


def test_read_geom_table_preorder():
    gms, buf = scenetest.build_geom_files([
        ("ROOT", scenetest.ZROOM, 0, [
            ("a", scenetest.ZGEOM, 1, [
                ("a1", scenetest.ZGEOM, 2, []),
            ]),
            ("b", scenetest.ZGEOM, 3, []),
        ]),
    ])
    entities = prpscene.read_geom_table(BinaryReader(gms), BinaryReader(buf))

    assert [e.name for e in entities] == ["ROOT", "a", "a1", "b"]
    assert [e.depth_level for e in entities] == [0, 1, 2, 1]
    assert [e.parent_geom_index for e in entities] == [GeomEntity.INVALID_PARENT, 0, 1, 0]
    assert [e.instance_id for e in entities] == [0, 1, 2, 3]
    assert not entities[0].has_parent
    assert entities[2].has_parent


def test_read_geom_table_count_past_end():
    gms = struct.pack("<I", 5) + scenetest.record(1)
    with pytest.raises(prpscene.DecodeError):
        prpscene.read_geom_table(BinaryReader(gms), BinaryReader(b"\0x\0"))


def test_read_geom_table_depth_limit():
    gms, buf = scenetest.build_geom_files([
        ("r", 1, 0, [("a", 1, 1, [("b", 1, 2, [])])]),
    ])
    with pytest.raises(prpscene.DecodeError, match="deeper"):
        prpscene.read_geom_table(BinaryReader(gms), BinaryReader(buf), max_depth=1)


def test_read_geom_table_depth_bounded_by_recursion_limit(monkeypatch):
    monkeypatch.setenv("PRPSCENE_MAX_DEPTH", "100000")
    gms = bytearray()
    for _ in range(sys.getrecursionlimit()):
        gms += struct.pack("<I", 1) + scenetest.record(1, type_id=scenetest.HERO)
    gms += struct.pack("<I", 0)
    with pytest.raises(prpscene.DecodeError, match="deeper"):
        prpscene.read_geom_table(BinaryReader(gms), BinaryReader(b"\0x\0"))
