"""Tests for decoded values and freezing."""

import types

import pytest

import prpscene
import scenetest


@pytest.fixture(scope="module")
def registry():
    return scenetest.make_registry()


def map_box(registry):
    box = registry.find_type_by_name("ZBox")
    value, rest = box.map(scenetest.cursor("""
        Int32 7
        BeginObject
            Array 3
                Float32 0.0
                Float32 0.0
                Float32 0.0
            EndArray
            Array 3
                Float32 1.0
                Float32 2.0
                Float32 3.0
            EndArray
        EndObject
        Bitfield ["Solid"]
        Float32 90.0
    """))
    assert value is not None
    assert rest.empty
    return value


def test_value_fields(registry):
    value = map_box(registry)
    assert value.type_name == "ZBox"
    assert list(value.fields) == ["Id", "Bounds", "Flags", "Yaw"]
    assert value["Id"].data == 7
    assert value["Bounds"]["Max"][2].data == 3.0
    assert value["Flags"].data == ("Solid",)
    assert value["Yaw"].type_name == "Float32"


def test_value_to_python(registry):
    value = map_box(registry)
    assert value.to_python() == {
        "Id": 7,
        "Bounds": {"Min": [0.0, 0.0, 0.0], "Max": [1.0, 2.0, 3.0]},
        "Flags": ("Solid",),
        "Yaw": 90.0,
    }


def test_primitive_has_no_fields(registry):
    value = map_box(registry)["Id"]
    assert dict(value.fields) == {}
    with pytest.raises(TypeError):
        value["x"]


def test_value_keeps_instructions(registry):
    value = map_box(registry)
    assert len(value.instructions) == 15
    assert value["Bounds"]["Min"].instructions[0] == prpscene.Instruction(prpscene.OpCode.Array, 3)


def test_freeze_is_recursive(registry):
    value = map_box(registry)
    assert value.freeze() is value
    assert value.frozen
    assert isinstance(value.data, types.MappingProxyType)
    bounds = value["Bounds"]
    assert bounds.frozen
    assert isinstance(bounds["Max"].data, tuple)
    assert all(item.frozen for item in bounds["Max"].data)
    assert isinstance(value.instructions, tuple)


def test_frozen_value_rejects_changes(registry):
    value = map_box(registry).freeze()
    with pytest.raises(ValueError):
        value.data = {}
    with pytest.raises(ValueError):
        value["Id"].data = 8
    with pytest.raises(TypeError):
        value.data["Id"] = None
    with pytest.raises(ValueError):
        value.append_unexposed([prpscene.Instruction(prpscene.OpCode.Int32, 1)])


def test_freeze_keeps_equality(registry):
    value = map_box(registry)
    other = map_box(registry).freeze()
    assert value == other
    assert value.to_python() == other.to_python()


def test_empty_sequences_compare_equal(registry):
    ids = registry.find_type_by_name("Ids")
    first, _ = ids.map(scenetest.cursor("Container 0"))
    second, _ = ids.map(scenetest.cursor("Container 0"))
    second.freeze()
    assert first == second
    assert second.to_python() == []


def test_inequality(registry):
    int32 = registry.find_type_by_name("Int32")
    one, _ = int32.map(scenetest.cursor("Int32 1"))
    two, _ = int32.map(scenetest.cursor("Int32 2"))
    assert one != two
    assert one != 1


def test_append_unexposed():
    value = prpscene.Value(None, {})
    extra = [prpscene.Instruction(prpscene.OpCode.Int32, 5)]
    value.append_unexposed(extra)
    assert value.unexposed == extra
    assert value.instructions == extra
    assert value.type_name is None
