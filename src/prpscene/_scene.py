"""Scene objects built from geometry entities"""

__all__ = ["SceneObject"]

import weakref


class SceneObject:
    """Node of the scene tree.

    A scene object is created from one geometry entity. The properties
    loader later fills in its properties, controllers, children and
    parent. Children are owned by their parent; the parent link is weak.

    Args:
        name: (str) Object name
        type_id: (int) Hash of the object type
        instance_id: (int) Instance identifier
        geom: (GeomEntity | None) Entity the object was built from

    Attributes:
        name: (str) Object name
        type_id: (int) Hash of the object type
        instance_id: (int) Instance identifier
        geom: (GeomEntity | None) Entity the object was built from
        properties: (Value | None) Decoded object properties
        controllers: (dict[str, Value]) Controllers by name
        children: (list[SceneObject]) Child objects in stream order
    """

    __slots__ = (
        "name", "type_id", "instance_id", "geom", "properties",
        "controllers", "children", "_parent", "__weakref__",
    )

    def __init__(self, name, type_id, instance_id=0, geom=None):
        self.name = name
        self.type_id = type_id
        self.instance_id = instance_id
        self.geom = geom
        self.properties = None
        self.controllers = {}
        self.children = []
        self._parent = None

    @classmethod
    def from_geom(cls, entity):
        """Create an unloaded scene object for a geometry entity."""
        return cls(entity.name, entity.type_id, entity.instance_id, geom=entity)

    @classmethod
    def from_geoms(cls, entities):
        """Create scene objects for a pre-order entity list."""
        return [cls.from_geom(entity) for entity in entities]

    def __repr__(self):
        return f"SceneObject<{self.name} type=0x{self.type_id:08X}>"

    @property
    def parent(self):
        """(SceneObject | None) Parent object, None for the root."""
        if self._parent is None:
            return None
        return self._parent()

    @parent.setter
    def parent(self, parent):
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def path(self):
        """(list[str]) Names from the root down to this object."""
        names = []
        current = self
        while current is not None:
            names.append(current.name)
            current = current.parent
        names.reverse()
        return names

    def walk(self):
        """Iterate this object and all descendants in pre-order."""
        stack = [self]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def find(self, name):
        """First object in pre-order with the given name, or None."""
        for obj in self.walk():
            if obj.name == name:
                return obj
        return None
