"""Type definitions and instruction matching.

A Type describes how one object type is laid out in the instruction stream.
Types are a tagged variant: the `kind` selects which payload definition is
attached, and `verify` / `map` dispatch once on that kind.

Types reference each other by name when declared. The registry resolves
those names in its link step, after which a type is never changed.
"""

__all__ = [
    "TypeKind",
    "Type",
    "PropertyDef",
    "PrimitiveDef",
    "EnumDef",
    "BitfieldDef",
    "AliasDef",
    "SequenceDef",
    "ComplexDef",
    "builtin_types",
    "split_unexposed",
]

import enum

import prpscene
from ._opcode import OpCode


class TypeKind(enum.Enum):
    """Discriminant for Type payloads."""

    PRIMITIVE = "PRIMITIVE"
    ENUM = "ENUM"
    BITFIELD = "BITFIELD"
    ALIAS = "ALIAS"
    CONTAINER = "CONTAINER"
    ARRAY = "ARRAY"
    COMPLEX = "COMPLEX"

    @classmethod
    def parse(cls, text):
        """Kind from a declaration string, 'COMPLEX' or 'TypeKind.COMPLEX'."""
        if isinstance(text, TypeKind):
            return text
        name = str(text).rsplit(".", 1)[-1].upper()
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown type kind '{text}'") from None


class PropertyDef:
    """Named property within a complex type.

    Args:
        name: (str) Property name
        type_name: (str) Name of the property type

    Attributes:
        name: (str) Property name
        type_name: (str) Name of the property type
        type: (Type | None) Resolved property type, set when linked
    """

    __slots__ = ("name", "type_name", "type")

    def __init__(self, name, type_name):
        self.name = name
        self.type_name = type_name
        self.type = None

    def __repr__(self):
        return f"Property<{self.name}:{self.type_name}>"


class PrimitiveDef:
    """Single instruction of a fixed opcode."""

    __slots__ = ("opcode",)

    def __init__(self, opcode):
        if isinstance(opcode, str):
            if opcode not in OpCode.__members__:
                raise ValueError(f"Unknown opcode '{opcode}'")
            opcode = OpCode[opcode]
        self.opcode = OpCode(opcode).unnamed


class EnumDef:
    """Named integer values, encoded as a String name or an Int32."""

    __slots__ = ("values", "_names")

    def __init__(self, values):
        self.values = dict(values)
        self._names = {number: name for name, number in self.values.items()}

    def lookup(self, operand):
        """Enum value name for a String or Int32 operand, or None."""
        if isinstance(operand, str):
            return operand if operand in self.values else None
        if isinstance(operand, int) and not isinstance(operand, bool):
            return self._names.get(operand)
        return None


class BitfieldDef:
    """Set of declared flag names."""

    __slots__ = ("flags",)

    def __init__(self, flags):
        self.flags = tuple(flags)


class AliasDef:
    """Another name for an existing type."""

    __slots__ = ("target_name", "target")

    def __init__(self, target_name):
        self.target_name = target_name
        self.target = None


class SequenceDef:
    """Element type shared by containers and arrays."""

    __slots__ = ("element_name", "element")

    def __init__(self, element_name):
        self.element_name = element_name
        self.element = None


class ComplexDef:
    """Structured object: optional parent, ordered properties.

    Args:
        properties: (list[PropertyDef]) Own properties in stream order
        parent_name: (str | None) Parent type whose properties come first
        allow_unexposed: (bool) Trailing undeclared instructions are kept
    """

    __slots__ = ("properties", "parent_name", "parent", "allow_unexposed")

    def __init__(self, properties=(), parent_name=None, allow_unexposed=False):
        self.properties = list(properties)
        self.parent_name = parent_name
        self.parent = None
        self.allow_unexposed = bool(allow_unexposed)


_payload_classes = {
    TypeKind.PRIMITIVE: PrimitiveDef,
    TypeKind.ENUM: EnumDef,
    TypeKind.BITFIELD: BitfieldDef,
    TypeKind.ALIAS: AliasDef,
    TypeKind.CONTAINER: SequenceDef,
    TypeKind.ARRAY: SequenceDef,
    TypeKind.COMPLEX: ComplexDef,
}


class Type:
    """Schema for one kind of object in the instruction stream.

    Args:
        name: (str) Unique type name
        kind: (TypeKind) Variant discriminant
        payload: Definition object matching the kind
        short_name: (str | None) Unqualified lookup name, defaults to the
            part of the name after the last '::'

    Attributes:
        name: (str) Unique type name
        short_name: (str) Unqualified lookup name
        kind: (TypeKind) Variant discriminant
        payload: Definition object for the kind
        hashes: (list[int]) Hashes that identify this type
    """

    __slots__ = ("name", "short_name", "kind", "payload", "hashes", "_linked")

    def __init__(self, name, kind, payload, short_name=None):
        kind = TypeKind.parse(kind)
        if not isinstance(payload, _payload_classes[kind]):
            raise TypeError(
                f"Type '{name}' of kind {kind.name} needs a "
                f"{_payload_classes[kind].__name__}, got {type(payload).__name__}")
        self.name = name
        self.short_name = short_name or name.rsplit("::", 1)[-1]
        self.kind = kind
        self.payload = payload
        self.hashes = []
        self._linked = kind in (TypeKind.PRIMITIVE, TypeKind.ENUM, TypeKind.BITFIELD)

    @classmethod
    def from_declaration(cls, decl):
        """Build an unlinked Type from a declaration dict.

        Args:
            decl: (dict) Declaration with at least "name" and "kind"
        Returns:
            (Type) New type, not yet linked
        Raises:
            RegistryError: The declaration is incomplete or invalid
        """
        try:
            name = decl["name"]
            kind = TypeKind.parse(decl["kind"])
            match kind:
                case TypeKind.PRIMITIVE:
                    payload = PrimitiveDef(decl["opcode"])
                case TypeKind.ENUM:
                    payload = EnumDef(decl["values"])
                case TypeKind.BITFIELD:
                    payload = BitfieldDef(decl["flags"])
                case TypeKind.ALIAS:
                    payload = AliasDef(decl["target"])
                case TypeKind.CONTAINER | TypeKind.ARRAY:
                    payload = SequenceDef(decl["element"])
                case TypeKind.COMPLEX:
                    properties = [
                        PropertyDef(prop["name"], prop["type"])
                        for prop in decl.get("properties", ())
                    ]
                    payload = ComplexDef(
                        properties,
                        parent_name=decl.get("parent"),
                        allow_unexposed=decl.get("allow_unexposed", False),
                    )
        except KeyError as e:
            where = decl.get("name", "<unnamed>") if isinstance(decl, dict) else decl
            raise prpscene.RegistryError(
                f"Type declaration '{where}' is missing {e}") from None
        except (ValueError, TypeError) as e:
            where = decl.get("name", "<unnamed>") if isinstance(decl, dict) else decl
            raise prpscene.RegistryError(
                f"Invalid type declaration '{where}': {e}") from None
        return cls(name, kind, payload, short_name=decl.get("short_name"))

    def __repr__(self):
        return f"Type<{self.name}:{self.kind.name}>"

    @property
    def is_linked(self):
        """(bool) All type references have been resolved."""
        return self._linked

    def allows_unexposed_instructions(self):
        """Trailing undeclared instructions may follow the schema."""
        return self.kind is TypeKind.COMPLEX and self.payload.allow_unexposed

    def resolved(self):
        """Follow aliases to the type that actually reads instructions."""
        current = self
        while current.kind is TypeKind.ALIAS:
            current = current.payload.target
        return current

    def properties(self):
        """All properties of a complex type, inherited ones first."""
        if self.kind is not TypeKind.COMPLEX:
            return []
        chain = []
        current = self
        while current is not None:
            chain.append(current)
            current = current.payload.parent
        props = []
        for current in reversed(chain):
            props.extend(current.payload.properties)
        return props

    def link(self, resolve):
        """Resolve referenced type names.

        Args:
            resolve: (Callable[[str, str], Type]) Called with the referenced
                name and a description of the reference. Raises when the
                name cannot be found.
        """
        payload = self.payload
        match self.kind:
            case TypeKind.ALIAS:
                payload.target = resolve(payload.target_name, f"alias target of '{self.name}'")
            case TypeKind.CONTAINER | TypeKind.ARRAY:
                payload.element = resolve(payload.element_name, f"element of '{self.name}'")
            case TypeKind.COMPLEX:
                if payload.parent_name:
                    payload.parent = resolve(payload.parent_name, f"parent of '{self.name}'")
                for prop in payload.properties:
                    prop.type = resolve(prop.type_name, f"property '{self.name}.{prop.name}'")
        self._linked = True

    def verify(self, cursor):
        """Check that upcoming instructions match this type.

        Nothing is consumed; the returned cursor shows where checking
        stopped, which on failure is the offending instruction.

        Returns:
            (tuple[bool, Cursor]) Success and cursor past the matched data
        """
        return self._verify(prpscene.Cursor(cursor), 0)

    def map(self, cursor):
        """Decode upcoming instructions into a Value.

        Returns:
            (tuple[Value | None, Cursor]) Decoded value (None when the
            instructions do not match) and cursor past the decoded data
        """
        return self._map(prpscene.Cursor(cursor), 0)

    def _verify(self, cursor, depth):
        if depth > prpscene.config.DEFAULT_MAX_DEPTH:
            return False, cursor
        payload = self.payload
        match self.kind:
            case TypeKind.PRIMITIVE:
                if cursor.at(payload.opcode):
                    return True, cursor.advance()
                return False, cursor

            case TypeKind.ENUM:
                if cursor.at(OpCode.String, OpCode.Int32):
                    if payload.lookup(cursor.head.operand) is not None:
                        return True, cursor.advance()
                return False, cursor

            case TypeKind.BITFIELD:
                if cursor.at(OpCode.Bitfield):
                    if all(flag in payload.flags for flag in cursor.head.operand):
                        return True, cursor.advance()
                return False, cursor

            case TypeKind.ALIAS:
                return payload.target._verify(cursor, depth)

            case TypeKind.CONTAINER | TypeKind.ARRAY:
                opener = OpCode.Container if self.kind is TypeKind.CONTAINER else OpCode.Array
                if not cursor.at(opener) or cursor.head.operand < 0:
                    return False, cursor
                count = cursor.head.operand
                cursor = cursor.advance()
                for _ in range(count):
                    ok, cursor = payload.element._verify_member(cursor, depth + 1)
                    if not ok:
                        return False, cursor
                if self.kind is TypeKind.ARRAY:
                    if not cursor.at(OpCode.EndArray):
                        return False, cursor
                    cursor = cursor.advance()
                return True, cursor

            case TypeKind.COMPLEX:
                for prop in self.properties():
                    ok, cursor = prop.type._verify_member(cursor, depth + 1)
                    if not ok:
                        return False, cursor
                return True, cursor

    def _verify_member(self, cursor, depth):
        """Verify this type used as a property or element."""
        target = self.resolved()
        if target.kind is not TypeKind.COMPLEX:
            return target._verify(cursor, depth)
        if not cursor.at(OpCode.BeginObject):
            return False, cursor
        ok, cursor = target._verify(cursor.advance(), depth)
        if not ok:
            return False, cursor
        if not cursor.at(OpCode.EndObject) and target.allows_unexposed_instructions():
            split = split_unexposed(cursor)
            if split is None:
                return False, cursor
            cursor = split[1]
        if not cursor.at(OpCode.EndObject):
            return False, cursor
        return True, cursor.advance()

    def _map(self, cursor, depth):
        if depth > prpscene.config.DEFAULT_MAX_DEPTH:
            return None, cursor
        start = cursor
        payload = self.payload
        match self.kind:
            case TypeKind.PRIMITIVE:
                if not cursor.at(payload.opcode):
                    return None, cursor
                data = cursor.head.operand
                cursor = cursor.advance()

            case TypeKind.ENUM:
                if not cursor.at(OpCode.String, OpCode.Int32):
                    return None, cursor
                data = payload.lookup(cursor.head.operand)
                if data is None:
                    return None, cursor
                cursor = cursor.advance()

            case TypeKind.BITFIELD:
                if not cursor.at(OpCode.Bitfield):
                    return None, cursor
                data = cursor.head.operand
                if not all(flag in payload.flags for flag in data):
                    return None, cursor
                cursor = cursor.advance()

            case TypeKind.ALIAS:
                return payload.target._map(cursor, depth)

            case TypeKind.CONTAINER | TypeKind.ARRAY:
                opener = OpCode.Container if self.kind is TypeKind.CONTAINER else OpCode.Array
                if not cursor.at(opener) or cursor.head.operand < 0:
                    return None, cursor
                count = cursor.head.operand
                cursor = cursor.advance()
                data = []
                for _ in range(count):
                    item, cursor = payload.element._map_member(cursor, depth + 1)
                    if item is None:
                        return None, cursor
                    data.append(item)
                if self.kind is TypeKind.ARRAY:
                    if not cursor.at(OpCode.EndArray):
                        return None, cursor
                    cursor = cursor.advance()

            case TypeKind.COMPLEX:
                data = {}
                for prop in self.properties():
                    item, cursor = prop.type._map_member(cursor, depth + 1)
                    if item is None:
                        return None, cursor
                    data[prop.name] = item

        return prpscene.Value(self, data, start.consumed_until(cursor)), cursor

    def _map_member(self, cursor, depth):
        """Map this type used as a property or element."""
        target = self.resolved()
        if target.kind is not TypeKind.COMPLEX:
            return target._map(cursor, depth)
        if not cursor.at(OpCode.BeginObject):
            return None, cursor
        value, cursor = target._map(cursor.advance(), depth)
        if value is None:
            return None, cursor
        if not cursor.at(OpCode.EndObject) and target.allows_unexposed_instructions():
            split = split_unexposed(cursor)
            if split is None:
                return None, cursor
            unexposed, cursor = split
            value.append_unexposed(unexposed)
        if not cursor.at(OpCode.EndObject):
            return None, cursor
        return value, cursor.advance()


def split_unexposed(cursor):
    """Split off instructions up to the nearest EndObject.

    Returns:
        (tuple[tuple, Cursor] | None) The instructions before the EndObject
        and a cursor positioned on it, or None when no EndObject follows
    """
    offset = cursor.find(OpCode.EndObject)
    if offset is None:
        return None
    return cursor.take(offset), cursor.advance(offset)


def builtin_types():
    """Fresh primitive types for every operand-carrying opcode."""
    names = [
        "Char", "Bool", "Int8", "Int16", "Int32", "Float32", "Float64",
        "String", "RawData", "Reference",
    ]
    return [Type(name, TypeKind.PRIMITIVE, PrimitiveDef(name)) for name in names]
