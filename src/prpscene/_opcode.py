"""Property stream opcodes and instructions.

An instruction is one opcode with an optional operand. Instructions come
from an external property stream decoder (or a text listing) and are never
changed afterwards. Named opcodes carry the same operand as their unnamed
counterpart and are treated the same way when matching types.
"""

__all__ = ["OpCode", "Instruction"]

import enum


class OpCode(enum.IntEnum):
    """Opcodes of the property instruction stream."""

    Array = 0x01
    BeginObject = 0x02
    Reference = 0x03
    Container = 0x04
    Char = 0x05
    Bool = 0x06
    Int8 = 0x07
    Int16 = 0x08
    Int32 = 0x09
    Float32 = 0x0A
    Float64 = 0x0B
    String = 0x0C
    RawData = 0x0D
    Bitfield = 0x0E
    EndArray = 0x0F
    SkipMark = 0x10
    EndObject = 0x11
    EndOfStream = 0x12
    NamedArray = 0x13
    BeginNamedObject = 0x14
    NamedReference = 0x15
    NamedContainer = 0x16
    NamedChar = 0x17
    NamedBool = 0x18
    NamedInt8 = 0x19
    NamedInt16 = 0x1A
    NamedInt32 = 0x1B
    NamedFloat32 = 0x1C
    NamedFloat64 = 0x1D
    NamedString = 0x1E
    NamedRawData = 0x1F
    NamedBitfield = 0x20

    @property
    def unnamed(self):
        """(OpCode) Base opcode for a named variant, or self."""
        return _unnamed.get(self, self)

    @property
    def is_named(self):
        """(bool) True for the Named* variants."""
        return self in _unnamed

    @property
    def operand_kind(self):
        """(str) Kind of operand this opcode carries."""
        return _operand_kinds.get(self.unnamed, "none")


_unnamed = {
    OpCode.NamedArray: OpCode.Array,
    OpCode.BeginNamedObject: OpCode.BeginObject,
    OpCode.NamedReference: OpCode.Reference,
    OpCode.NamedContainer: OpCode.Container,
    OpCode.NamedChar: OpCode.Char,
    OpCode.NamedBool: OpCode.Bool,
    OpCode.NamedInt8: OpCode.Int8,
    OpCode.NamedInt16: OpCode.Int16,
    OpCode.NamedInt32: OpCode.Int32,
    OpCode.NamedFloat32: OpCode.Float32,
    OpCode.NamedFloat64: OpCode.Float64,
    OpCode.NamedString: OpCode.String,
    OpCode.NamedRawData: OpCode.RawData,
    OpCode.NamedBitfield: OpCode.Bitfield,
}

_operand_kinds = {
    OpCode.Array: "int",
    OpCode.Container: "int",
    OpCode.Int8: "int",
    OpCode.Int16: "int",
    OpCode.Int32: "int",
    OpCode.Char: "char",
    OpCode.Bool: "bool",
    OpCode.Float32: "float",
    OpCode.Float64: "float",
    OpCode.String: "str",
    OpCode.Reference: "str",
    OpCode.RawData: "bytes",
    OpCode.Bitfield: "flags",
}

_int_ranges = {
    OpCode.Int8: (-0x80, 0x7F),
    OpCode.Int16: (-0x8000, 0x7FFF),
    OpCode.Int32: (-0x80000000, 0x7FFFFFFF),
    OpCode.Array: (-0x80000000, 0x7FFFFFFF),
    OpCode.Container: (-0x80000000, 0x7FFFFFFF),
}


class Instruction:
    """Single property stream instruction.

    Args:
        opcode: (OpCode) Instruction opcode
        operand: Payload matching the opcode (int, bool, float, str, bytes,
            tuple of flag names, or None)

    Attributes:
        opcode: (OpCode) Instruction opcode
        operand: Instruction payload
    """

    __slots__ = ("_opcode", "_operand")

    def __init__(self, opcode, operand=None):
        opcode = OpCode(opcode)
        operand = _check_operand(opcode, operand)
        object.__setattr__(self, "_opcode", opcode)
        object.__setattr__(self, "_operand", operand)

    @property
    def opcode(self):
        return self._opcode

    @property
    def operand(self):
        return self._operand

    def __setattr__(self, name, value):
        raise AttributeError("Instruction is immutable")

    def is_a(self, *opcodes):
        """Check the opcode against base opcodes, ignoring named variants."""
        return self._opcode.unnamed in opcodes

    def __eq__(self, other):
        if not isinstance(other, Instruction):
            return NotImplemented
        return self._opcode == other._opcode and self._operand == other._operand

    def __hash__(self):
        return hash((self._opcode, self._operand))

    def __repr__(self):
        if self._operand is None:
            return f"Instruction<{self._opcode.name}>"
        return f"Instruction<{self._opcode.name} {self._operand!r}>"


def _check_operand(opcode, operand):
    """Validate and normalize an operand for the opcode."""
    kind = opcode.operand_kind
    match kind:
        case "none":
            if operand is not None:
                raise ValueError(f"{opcode.name} takes no operand")
        case "int":
            if isinstance(operand, bool) or not isinstance(operand, int):
                raise ValueError(f"{opcode.name} expects an integer operand")
            low, high = _int_ranges[opcode.unnamed]
            if not low <= operand <= high:
                raise ValueError(f"{opcode.name} operand {operand} out of range")
        case "char":
            if not isinstance(operand, str) or len(operand) != 1:
                raise ValueError(f"{opcode.name} expects a single character")
        case "bool":
            if not isinstance(operand, bool):
                raise ValueError(f"{opcode.name} expects a bool operand")
        case "float":
            if isinstance(operand, bool) or not isinstance(operand, (int, float)):
                raise ValueError(f"{opcode.name} expects a float operand")
            operand = float(operand)
        case "str":
            if not isinstance(operand, str):
                raise ValueError(f"{opcode.name} expects a string operand")
        case "bytes":
            if not isinstance(operand, (bytes, bytearray)):
                raise ValueError(f"{opcode.name} expects a bytes operand")
            operand = bytes(operand)
        case "flags":
            if operand is None or isinstance(operand, str):
                raise ValueError(f"{opcode.name} expects a sequence of flag names")
            operand = tuple(operand)
            if not all(isinstance(flag, str) for flag in operand):
                raise ValueError(f"{opcode.name} flags must be strings")
    return operand
