"""Text listings of property instruction streams.

A listing holds one instruction per line, written as the opcode name and
an optional operand:

    BeginObject
        Int32 42
        String "door_01"
        Bitfield ["Visible", "Solid"]
        RawData x"00ff10"
    EndObject
    Container 0    # no controllers

Listings are a readable stand-in for the binary property stream. They are
used to feed the loader from text and to print instruction streams.
"""

__all__ = ["parse_listing", "parse_tree", "format_listing", "format_instruction"]

import ast
import json

import lark

import prpscene
from ._opcode import Instruction, OpCode


def parse_listing(source):
    """Parse listing text into instructions.

    Args:
        source: (str) Listing text
    Returns:
        (tuple[Instruction]) Parsed instructions
    Raises:
        ParseError: Syntax error, unknown opcode or bad operand
    """
    parser = _lark_parser("listing")
    try:
        tree = parser.parse(source)
    except lark.exceptions.UnexpectedInput as e:
        raise prpscene.ParseError(
            f"Invalid listing syntax: {_describe(e)}",
            (e.line, e.column)) from None
    return tuple(_convert_instruction(kid) for kid in tree.children)


def parse_tree(source):
    """Raw lark tree for listing text, for diagnostics."""
    return _lark_parser("listing").parse(source)


def format_instruction(instruction):
    """Listing line for a single instruction (without newline)."""
    operand = instruction.operand
    if operand is None:
        return instruction.opcode.name
    return f"{instruction.opcode.name} {_format_operand(operand)}"


def format_listing(instructions, indent="    "):
    """Listing text for instructions, nested objects indented.

    Args:
        instructions: (Iterable[Instruction]) Instructions to write
        indent: (str) Indentation per nesting level
    Returns:
        (str) Listing text, one line per instruction
    """
    lines = []
    level = 0
    for instruction in instructions:
        if instruction.is_a(OpCode.EndObject, OpCode.EndArray):
            level = max(level - 1, 0)
        lines.append(f"{indent * level}{format_instruction(instruction)}")
        if instruction.is_a(OpCode.BeginObject, OpCode.Array):
            level += 1
    return "\n".join(lines) + ("\n" if lines else "")


def _format_operand(operand):
    if isinstance(operand, bool):
        return "true" if operand else "false"
    if isinstance(operand, float):
        return repr(operand) if operand == operand else "nan"
    if isinstance(operand, int):
        return str(operand)
    if isinstance(operand, str):
        return json.dumps(operand)
    if isinstance(operand, bytes):
        return f'x"{operand.hex()}"'
    if isinstance(operand, tuple):
        return "[" + ", ".join(json.dumps(flag) for flag in operand) + "]"
    raise TypeError(f"Cannot format operand {operand!r}")


def _convert_instruction(tree):
    """Convert an instruction tree to an Instruction."""
    token = tree.children[0]
    try:
        opcode = OpCode[token.value]
    except KeyError:
        raise prpscene.ParseError(
            f"Unknown opcode '{token.value}'", (token.line, token.column)) from None

    operand = None
    if len(tree.children) > 1 and tree.children[1] is not None:
        operand = _convert_operand(tree.children[1])
    if opcode.operand_kind == "float" and isinstance(operand, int) and not isinstance(operand, bool):
        operand = float(operand)

    try:
        return Instruction(opcode, operand)
    except ValueError as e:
        raise prpscene.ParseError(str(e), (token.line, token.column)) from None


def _convert_operand(tree):
    kids = tree.children
    match tree.data:
        case "int":
            return int(kids[0].value)
        case "float":
            return float(kids[0].value)
        case "string":
            return _string_value(kids[0])
        case "true":
            return True
        case "false":
            return False
        case "raw":
            digits = "".join(kids[0].value[2:-1].split())
            try:
                return bytes.fromhex(digits)
            except ValueError:
                raise prpscene.ParseError(
                    "Raw data needs an even number of hex digits",
                    (kids[0].line, kids[0].column)) from None
        case "flags":
            return tuple(_string_value(kid) for kid in kids if kid is not None)
        case _:
            raise ValueError(f"Unhandled grammar rule: {tree.data}")


def _string_value(token):
    try:
        return ast.literal_eval(token.value)
    except (SyntaxError, ValueError) as e:
        raise prpscene.ParseError(
            f"Invalid string {token.value}: {e}",
            (token.line, token.column)) from None


def _describe(error):
    if isinstance(error, lark.exceptions.UnexpectedToken):
        expected = ", ".join(sorted(error.expected))
        return f"unexpected {error.token.type} {error.token.value!r}, expected one of {expected}"
    if isinstance(error, lark.exceptions.UnexpectedCharacters):
        return f"unexpected character {error.char!r}"
    return "unexpected end of input"


_parsers = {}


def _lark_parser(name):
    """Get globally shared lark parser.

    Args:
        name: (str) name of the grammar file (without .lark)

    Returns:
        (lark.Lark) Parser instance
    """
    parser = _parsers.get(name)
    if parser is not None:
        return parser

    path = f"lark/{name}.lark"
    parser = lark.Lark.open(
        path, rel_to=__file__, parser="lalr", propagate_positions=True
    )
    _parsers[name] = parser
    return parser
