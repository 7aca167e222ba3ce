"""Tests for parsing and formatting instruction listings."""

import math

import pytest

import prpscene
import scenetest
from prpscene import Instruction, OpCode


def test_parse_operands():
    instructions = scenetest.listing("""
        Int32 -42
        Float32 1.5
        Float64 1e3
        Float32 2
        Bool true
        NamedBool false
        Char "a"
        String "door \\"01\\""
        RawData x"00 ff 10"
        Bitfield ["Visible", "Solid"]
        Bitfield []
        EndObject
    """)
    assert instructions == (
        Instruction(OpCode.Int32, -42),
        Instruction(OpCode.Float32, 1.5),
        Instruction(OpCode.Float64, 1000.0),
        Instruction(OpCode.Float32, 2.0),
        Instruction(OpCode.Bool, True),
        Instruction(OpCode.NamedBool, False),
        Instruction(OpCode.Char, "a"),
        Instruction(OpCode.String, 'door "01"'),
        Instruction(OpCode.RawData, b"\x00\xff\x10"),
        Instruction(OpCode.Bitfield, ("Visible", "Solid")),
        Instruction(OpCode.Bitfield, ()),
        Instruction(OpCode.EndObject),
    )
    assert isinstance(instructions[3].operand, float)


def test_parse_special_floats():
    instructions = scenetest.listing("""
        Float32 inf
        Float32 -inf
        Float64 nan
    """)
    assert instructions[0].operand == math.inf
    assert instructions[1].operand == -math.inf
    assert math.isnan(instructions[2].operand)


def test_comments_and_blank_lines():
    instructions = scenetest.listing("""
        # properties
        BeginObject

        EndObject    # end of properties
        Container 0
           # nothing below
        Container 0""")
    assert [ins.opcode for ins in instructions] == [
        OpCode.BeginObject, OpCode.EndObject, OpCode.Container, OpCode.Container,
    ]


def test_empty_listing():
    assert prpscene.parse_listing("") == ()
    assert prpscene.parse_listing("\n# only a comment\n") == ()


def test_unknown_opcode_position():
    with pytest.raises(prpscene.ParseError) as exc:
        prpscene.parse_listing("BeginObject\n  Int64 5\n")
    assert exc.value.position == (2, 3)
    assert "Int64" in str(exc.value)
    assert "line 2" in str(exc.value)


@pytest.mark.parametrize("text", [
    "Int8 300",
    "Int32 1.5",
    "EndObject 1",
    "String 5",
    "Bool 1",
    "Char \"ab\"",
    "Container",
    'RawData x"abc"',
    r'String "\x"',
    r'String "\N{NOPE}"',
    r'Bitfield ["Visible", "\u12"]',
])
def test_bad_operands(text):
    with pytest.raises(prpscene.ParseError):
        prpscene.parse_listing(text)


@pytest.mark.parametrize("text", [
    "Int32 1 2",
    "beginObject",
    "Int32 @",
    "String \"unterminated",
])
def test_syntax_errors(text):
    with pytest.raises(prpscene.ParseError) as exc:
        prpscene.parse_listing(text)
    assert exc.value.position is not None


def test_format_listing_reparses():
    source = scenetest.listing("""
        BeginObject
            Int32 7
            BeginNamedObject
                Array 2
                    Float32 0.5
                    Float32 nan
                EndArray
            EndObject
            Bitfield ["Solid"]
            RawData x"beef"
            String "tab\\there"
        EndObject
        Container 0
    """)
    text = prpscene.format_listing(source)
    assert text.splitlines()[2] == "    BeginNamedObject"
    assert text.splitlines()[4] == "            Float32 0.5"
    reparsed = prpscene.parse_listing(text)
    assert [ins.opcode for ins in reparsed] == [ins.opcode for ins in source]
    assert reparsed[-3].operand == "tab\there"
    assert math.isnan(reparsed[5].operand)
    assert reparsed[:5] == source[:5]
    assert reparsed[6:] == source[6:]


def test_format_instruction():
    assert prpscene.format_instruction(Instruction(OpCode.EndObject)) == "EndObject"
    assert prpscene.format_instruction(Instruction(OpCode.Bool, True)) == "Bool true"
    assert prpscene.format_instruction(Instruction(OpCode.String, "a\"b")) == 'String "a\\"b"'
    assert prpscene.format_listing([]) == ""


def test_bad_string_escape_position():
    with pytest.raises(prpscene.ParseError, match="Invalid string") as exc:
        prpscene.parse_listing('BeginObject\n    String "door\\x"\n')
    assert exc.value.position == (2, 12)
