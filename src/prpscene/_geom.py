"""Geometry entity records from level GMS data.

Each entity is a fixed 0x40 byte record in the GMS stream. Names are stored
separately in the buffer stream and referenced by offset. The entity table
nests: every record is followed by the table of its own children, which
flattens into a pre-order list where each entity knows its parent index
and depth.
"""

__all__ = ["GeomEntity", "deserialize", "read_geom_table", "RECORD_SIZE"]

import logging

import prpscene


logger = logging.getLogger(__name__)

RECORD_SIZE = 0x40


class GeomEntity:
    """Metadata for one scene node.

    Unknown record words are kept verbatim under their record offsets so
    nothing is lost between decoding and any later consumer.

    Attributes:
        name: (str) Entity name
        type_id: (int) Hash of the entity's object type
        instance_id: (int) Instance identifier
        primitive_id: (int) Index of the attached primitive, 0 for none
        coli_bits: (int) Collision flags
        depth_level: (int) Nesting depth, 0 for the root
        parent_geom_index: (int) Index of the parent in the flat list, or
            INVALID_PARENT for the root
        reserved: (dict[int, int]) Unknown record words by record offset
        unk34: (bytes) Four raw bytes at record offset 0x34
    """

    INVALID_PARENT = 0xFFFFFFEE

    __slots__ = (
        "name", "type_id", "instance_id", "primitive_id", "coli_bits",
        "depth_level", "parent_geom_index", "reserved", "unk34",
    )

    def __init__(self, name="", type_id=0, instance_id=0, depth_level=0,
                 parent_geom_index=INVALID_PARENT):
        self.name = name
        self.type_id = type_id
        self.instance_id = instance_id
        self.primitive_id = 0
        self.coli_bits = 0
        self.depth_level = depth_level
        self.parent_geom_index = parent_geom_index
        self.reserved = {}
        self.unk34 = bytes(4)

    def __repr__(self):
        return f"GeomEntity<{self.name} type=0x{self.type_id:08X} depth={self.depth_level}>"

    @property
    def has_parent(self):
        """(bool) Entity is not the root."""
        return self.parent_geom_index != GeomEntity.INVALID_PARENT


# Record words in order after the name offset at 0x00
_RECORD_LAYOUT = [
    (0x04, None), (0x08, None), (0x0C, "primitive_id"), (0x10, None),
    (0x14, "type_id"), (0x18, None), (0x1C, "coli_bits"), (0x20, None),
    (0x24, None), (0x28, None), (0x2C, None), (0x30, "instance_id"),
    (0x34, "unk34"), (0x38, None), (0x3C, None),
]


def deserialize(entity, depth_level, gms_reader, buf_reader):
    """Fill an entity from its GMS record.

    Args:
        entity: (GeomEntity) Record to fill
        depth_level: (int) Nesting depth of the entity
        gms_reader: (BinaryReader) Positioned at the record, advanced past it
        buf_reader: (BinaryReader) Buffer holding entity names
    Raises:
        DecodeError: Record or name is truncated
    """
    name_offset = gms_reader.read_u32()
    for offset, attr in _RECORD_LAYOUT:
        if attr == "unk34":
            entity.unk34 = gms_reader.read_bytes(4)
        elif attr is None:
            entity.reserved[offset] = gms_reader.read_u32()
        else:
            setattr(entity, attr, gms_reader.read_u32())
    entity.name = buf_reader.at(name_offset).read_cstring()
    entity.depth_level = depth_level


def read_geom_table(gms_reader, buf_reader, max_depth=None):
    """Read a nested entity table into a flat pre-order list.

    Args:
        gms_reader: (BinaryReader) Positioned at the root table
        buf_reader: (BinaryReader) Buffer holding entity names
        max_depth: (int | None) Deepest nesting allowed
    Returns:
        (list[GeomEntity]) Entities in pre-order
    """
    if max_depth is None:
        max_depth = prpscene.config.get_max_depth()
    else:
        max_depth = prpscene.config.clamp_max_depth(max_depth)
    entities = []
    _read_table(entities, gms_reader, buf_reader, 0, GeomEntity.INVALID_PARENT, max_depth)
    logger.debug("Read %d geometry entities", len(entities))
    return entities


def _read_table(entities, gms_reader, buf_reader, depth, parent_index, max_depth):
    if depth > max_depth:
        raise prpscene.DecodeError(f"Entity table nested deeper than {max_depth}")
    count = gms_reader.read_u32()
    if count * RECORD_SIZE > gms_reader.remaining():
        raise prpscene.DecodeError(
            f"Entity table of {count} records at offset {gms_reader.tell() - 4} "
            f"exceeds remaining data")
    for _ in range(count):
        entity = GeomEntity()
        deserialize(entity, depth, gms_reader, buf_reader)
        entity.parent_geom_index = parent_index
        index = len(entities)
        entities.append(entity)
        _read_table(entities, gms_reader, buf_reader, depth + 1, index, max_depth)
