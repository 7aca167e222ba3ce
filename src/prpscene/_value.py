"""Decoded property values."""

__all__ = ["Value"]

import types

import prpscene


class Value:
    """Property data decoded from an instruction stream by a Type.

    The shape of `data` depends on the kind of the type that produced it:

    * COMPLEX: dict of property name to Value, in schema order
    * CONTAINER / ARRAY: list of Values
    * ENUM: name of the enum value (str)
    * BITFIELD: tuple of flag names
    * PRIMITIVE: the instruction operand

    Values keep the verbatim instructions they were decoded from. Complex
    values can also carry unexposed instructions: trailing instructions
    past the declared schema that are preserved as-is.

    Values are mutable while a loader builds them and are frozen before
    being handed out. Freezing is recursive.

    Args:
        type: (Type) Type that decoded this value
        data: Decoded data, see above
        instructions: (Iterable[Instruction]) Instructions consumed

    Attributes:
        type: (Type) Type that decoded this value
        data: Decoded data
        instructions: (list | tuple) Every instruction behind this value,
            including unexposed ones
        unexposed: (list | tuple) Unexposed trailing instructions only
    """

    __slots__ = ("type", "data", "instructions", "unexposed", "_frozen")

    def __init__(self, type, data, instructions=()):
        self.type = type
        self.data = data
        self.instructions = list(instructions)
        self.unexposed = []
        self._frozen = False

    def __setattr__(self, name, value):
        if name != "_frozen" and getattr(self, "_frozen", False):
            raise ValueError(f"Cannot change frozen value {self!r}")
        object.__setattr__(self, name, value)

    def __repr__(self):
        name = self.type.name if self.type is not None else "?"
        return f"Value<{name} {self.to_python()!r}>"

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return (
            self.type_name == other.type_name
            and self.to_python() == other.to_python()
            and tuple(self.unexposed) == tuple(other.unexposed)
        )

    def __hash__(self):
        return hash((self.type_name, len(self.instructions)))

    def __getitem__(self, key):
        """Access a field of a complex value or an item of a sequence."""
        if isinstance(self.data, (dict, types.MappingProxyType, list, tuple)):
            return self.data[key]
        raise TypeError(f"{self!r} has no fields")

    @property
    def type_name(self):
        """(str | None) Name of the type that decoded this value."""
        return self.type.name if self.type is not None else None

    @property
    def frozen(self):
        """(bool) Value can no longer be changed."""
        return self._frozen

    @property
    def fields(self):
        """(Mapping) Named fields of a complex value (empty for others)."""
        if isinstance(self.data, (dict, types.MappingProxyType)):
            return self.data
        return types.MappingProxyType({})

    def append_unexposed(self, instructions):
        """Attach unexposed trailing instructions to this value."""
        if self._frozen:
            raise ValueError(f"Cannot change frozen value {self!r}")
        instructions = list(instructions)
        self.unexposed.extend(instructions)
        self.instructions.extend(instructions)

    def freeze(self):
        """Recursively make this value immutable.

        Returns:
            self (for chaining)
        """
        if self._frozen:
            return self
        data = self.data
        if isinstance(data, dict):
            for value in data.values():
                value.freeze()
            data = types.MappingProxyType(data)
        elif isinstance(data, list):
            for value in data:
                value.freeze()
            data = tuple(data)
        self.data = data
        self.instructions = tuple(self.instructions)
        self.unexposed = tuple(self.unexposed)
        self._frozen = True
        return self

    def to_python(self):
        """Convert to plain python data (dicts, lists and operands)."""
        data = self.data
        if isinstance(data, (dict, types.MappingProxyType)):
            return {key: value.to_python() for key, value in data.items()}
        if self.type is not None and self.type.kind in _sequence_kinds():
            return [value.to_python() for value in data]
        return data


def _sequence_kinds():
    return (prpscene.TypeKind.CONTAINER, prpscene.TypeKind.ARRAY)
