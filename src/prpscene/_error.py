"""Error classes and helpers"""

__all__ = [
    "SceneError",
    "RegistryError",
    "DecodeError",
    "ParseError",
    "TypeNotFound",
    "SchemaLookupFailure",
    "MalformedInstructionStream",
    "StructuralViolation",
    "StreamExhaustion",
]


class SceneError(Exception):
    """Base for all errors raised while loading scene data."""


class RegistryError(SceneError):
    """Error building or linking a type registry."""


class DecodeError(SceneError):
    """Binary data is truncated or does not describe a valid table."""


class ParseError(SceneError):
    """Exception raised for instruction listing syntax errors.

    Args:
        message: (str) Error description
        position: (tuple | None) Optional (line, column) where error occurred

    Attributes:
        message: (str) Error description
        position: (tuple | None) (line, column) where error occurred
    """

    def __init__(self, message, position=None):
        self.message = message
        self.position = position
        if position is not None:
            message = f"{message} (line {position[0]}, column {position[1]})"
        super().__init__(message)


class TypeNotFound(SceneError):
    """A scene object or controller refers to a type the registry lacks.

    Args:
        object_index: (int) Index of the object being visited
        key: (int | str) Type hash or controller short name that missed

    Attributes:
        object_index: (int) Index of the object being visited
        key: (int | str) Type hash or controller short name that missed
    """

    def __init__(self, object_index, key):
        self.object_index = object_index
        self.key = key
        if isinstance(key, int):
            what = f"hash 0x{key:08X}"
        else:
            what = f"name '{key}'"
        super().__init__(f"object #{object_index}: type not found for {what}")


SchemaLookupFailure = TypeNotFound


class MalformedInstructionStream(SceneError):
    """The instruction stream does not match the expected object layout.

    Args:
        object_index: (int) Index of the object being visited
        reason: (str) What was wrong with the stream

    Attributes:
        object_index: (int) Index of the object being visited
        reason: (str) What was wrong with the stream
    """

    def __init__(self, object_index, reason):
        self.object_index = object_index
        self.reason = reason
        super().__init__(f"object #{object_index}: {reason}")


class StructuralViolation(MalformedInstructionStream):
    """Unexpected opcode, missing terminator or invalid count."""


class StreamExhaustion(MalformedInstructionStream):
    """The instruction stream or object list ran out mid-structure."""
