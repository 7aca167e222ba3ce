"""Scene object properties loader.

Walks the pre-order scene object list in lockstep with the property
instruction stream. Every object is laid out in the stream as three
sections:

    1) Properties
        [BeginObject | BeginNamedObject]
            (properties of the object type)
        [EndObject]
    2) Controllers
        [Container | NamedContainer - controller count]
            [String - controller short name]
            [BeginObject | BeginNamedObject]
                (properties of the controller type, maybe unexposed extras)
            [EndObject]
    3) Children
        [Container | NamedContainer - child count]
            (child object, sections 1 to 3)
            [EndObject]

The root object has no closing EndObject. Any divergence between the two
streams is fatal: skipping would misalign every following object.
"""

__all__ = ["SceneObjectPropertiesLoader", "load_scene"]

import logging

import prpscene
from ._opcode import OpCode


logger = logging.getLogger(__name__)


class SceneObjectPropertiesLoader:
    """Fill scene objects from a property instruction stream.

    Args:
        registry: (TypeRegistry) Linked registry used to resolve types
        max_depth: (int | None) Deepest object nesting accepted, defaults
            to `config.get_max_depth()`, never above `config.depth_limit()`
    """

    def __init__(self, registry, max_depth=None):
        self.registry = registry
        if max_depth is None:
            self.max_depth = prpscene.config.get_max_depth()
        else:
            self.max_depth = prpscene.config.clamp_max_depth(max_depth)

    def __repr__(self):
        return f"SceneObjectPropertiesLoader<{self.registry!r}>"

    def load(self, objects, instructions):
        """Load properties, controllers and hierarchy for all objects.

        The objects are left untouched unless the whole load succeeds.

        Args:
            objects: (Sequence[SceneObject]) Objects in pre-order
            instructions: (Cursor | Sequence[Instruction] | str) Property
                stream, a text listing is parsed first
        Returns:
            (SceneObject | None) The root object, None when either input
            is empty
        Raises:
            TypeNotFound: An object or controller type is not registered
            MalformedInstructionStream: The streams do not line up
            RegistryError: The registry has not been linked
        """
        objects = list(objects)
        cursor = prpscene.as_cursor(instructions)
        if not objects or cursor.empty:
            return None
        if not self.registry.sealed:
            raise prpscene.RegistryError("Registry must be linked before loading")

        context = _LoadContext(self.registry, objects, self.max_depth)
        root = context.visit(None, 0, cursor, 0)

        if not context.cursor.empty:
            logger.warning(
                "%d instructions left after the root object", context.cursor.size)
        if context.next_index < len(objects):
            logger.warning(
                "%d objects were not referenced by the instruction stream",
                len(objects) - context.next_index)

        context.commit()
        logger.info("Loaded %d scene objects", context.next_index)
        return root.obj


def load_scene(registry, entities, instructions, max_depth=None):
    """Build scene objects for geometry entities and load them.

    Args:
        registry: (TypeRegistry) Linked registry
        entities: (Sequence[GeomEntity]) Entities in pre-order
        instructions: Property stream, see `SceneObjectPropertiesLoader.load`
        max_depth: (int | None) Deepest object nesting accepted
    Returns:
        (SceneObject | None) Root of the loaded tree
    """
    objects = prpscene.SceneObject.from_geoms(entities)
    loader = SceneObjectPropertiesLoader(registry, max_depth=max_depth)
    return loader.load(objects, instructions)


class _Pending:
    """Loaded state for one object, applied only after a successful load."""

    __slots__ = ("obj", "parent", "properties", "controllers", "children")

    def __init__(self, obj, parent):
        self.obj = obj
        self.parent = parent
        self.properties = None
        self.controllers = {}
        self.children = []


class _LoadContext:
    """State of one load: object position, cursor and pending results."""

    def __init__(self, registry, objects, max_depth):
        self.registry = registry
        self.objects = objects
        self.max_depth = max_depth
        self.next_index = 1
        self.cursor = None
        self.pending = []

    def commit(self):
        for record in self.pending:
            obj = record.obj
            if record.properties is not None:
                record.properties.freeze()
            for value in record.controllers.values():
                value.freeze()
            obj.properties = record.properties
            obj.controllers = record.controllers
            obj.children = [child.obj for child in record.children]
            obj.parent = record.parent.obj if record.parent is not None else None

    def visit(self, parent, index, cursor, depth):
        """Visit one object and all its children.

        Args:
            parent: (_Pending | None) Parent record
            index: (int) Index of the object in the pre-order list
            cursor: (Cursor) Positioned at the object's BeginObject
            depth: (int) Nesting depth of the object
        Returns:
            (_Pending) Record for the object; self.cursor is left after
            the object's children container
        """
        if depth > self.max_depth:
            raise prpscene.StructuralViolation(
                index, f"Object nesting deeper than {self.max_depth}")
        current = self.objects[index]
        record = _Pending(current, parent)
        self.pending.append(record)
        logger.debug("Visiting object #%d '%s' at depth %d", index, current.name, depth)

        cursor = self._properties(record, index, cursor)
        cursor = self._controllers(record, index, cursor)
        self._children(record, index, cursor, depth)
        return record

    def _properties(self, record, index, cursor):
        _expect(cursor, index, "BeginObject/BeginNamedObject", OpCode.BeginObject)
        cursor = cursor.advance()

        type_id = record.obj.type_id
        object_type = self.registry.find_type_by_hash(type_id)
        if object_type is None:
            raise prpscene.TypeNotFound(index, type_id)

        ok, stopped = object_type.verify(cursor)
        if not ok:
            _malformed(index, stopped, f"Properties do not match type '{object_type.name}'")
        properties, cursor = object_type.map(cursor)
        if properties is None:
            _malformed(index, cursor, f"Failed to map properties of type '{object_type.name}'")
        record.properties = properties

        _expect(cursor, index, "EndObject after object properties", OpCode.EndObject)
        return cursor.advance()

    def _controllers(self, record, index, cursor):
        count = _expect_count(cursor, index, "controllers")
        cursor = cursor.advance()

        for _ in range(count):
            name = _expect(cursor, index, "controller name String", OpCode.String).operand
            cursor = cursor.advance()
            _expect(cursor, index, f"BeginObject for controller '{name}'", OpCode.BeginObject)
            cursor = cursor.advance()

            controller_type = self.registry.find_type_by_short_name(name)
            if controller_type is None:
                raise prpscene.TypeNotFound(index, name)
            if controller_type.kind is not prpscene.TypeKind.COMPLEX:
                raise prpscene.StructuralViolation(
                    index, f"Type '{controller_type.name}' is not a valid controller type "
                    f"(kind {controller_type.kind.name}, expected COMPLEX)")

            value, cursor = controller_type.map(cursor)
            if value is None:
                _malformed(index, cursor, f"Failed to map controller '{name}'")

            if not cursor.at(OpCode.EndObject) and controller_type.allows_unexposed_instructions():
                split = prpscene.split_unexposed(cursor)
                if split is None:
                    raise prpscene.StreamExhaustion(
                        index, f"Controller '{name}' has unexposed instructions "
                        "and no EndObject")
                unexposed, cursor = split
                value.append_unexposed(unexposed)

            _expect(cursor, index, f"EndObject for controller '{name}'", OpCode.EndObject)
            cursor = cursor.advance()

            if name in record.controllers:
                logger.warning(
                    "Object #%d '%s' repeats controller '%s', keeping the last one",
                    index, record.obj.name, name)
            record.controllers[name] = value

        return cursor

    def _children(self, record, index, cursor, depth):
        count = _expect_count(cursor, index, "children")
        cursor = cursor.advance()

        for _ in range(count):
            if self.next_index >= len(self.objects):
                raise prpscene.StreamExhaustion(
                    index, f"Object list exhausted, stream expects {count} children")
            child_index = self.next_index
            self.next_index += 1

            child = self.visit(record, child_index, cursor, depth + 1)
            record.children.append(child)
            cursor = self.cursor

            _expect(cursor, child_index, "EndObject closing child object", OpCode.EndObject)
            cursor = cursor.advance()

        self.cursor = cursor


def _expect(cursor, index, what, *opcodes):
    """Head instruction, checked against base opcodes."""
    if cursor.empty:
        raise prpscene.StreamExhaustion(index, f"Expected {what}, stream ended")
    if not cursor.at(*opcodes):
        raise prpscene.StructuralViolation(
            index, f"Expected {what}, got {cursor.opcode.name}")
    return cursor.head


def _expect_count(cursor, index, what):
    count = _expect(
        cursor, index, f"Container/NamedContainer with {what}", OpCode.Container).operand
    if count < 0:
        raise prpscene.StructuralViolation(index, f"Negative {what} count {count}")
    return count


def _malformed(index, cursor, reason):
    if cursor.empty:
        raise prpscene.StreamExhaustion(index, f"{reason}, stream ended")
    raise prpscene.StructuralViolation(
        index, f"{reason} (at instruction {cursor.position}, {cursor.opcode.name})")
