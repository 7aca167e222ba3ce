"""Forward cursor over an instruction stream"""

__all__ = ["Cursor", "as_cursor"]

import prpscene


class Cursor:
    """Bounds-checked forward view over a sequence of instructions.

    A cursor never moves. Advancing produces a new cursor over the
    remaining instructions, so the cursor value itself is the position.
    All cursors sliced from one another share the same instruction tuple.

    Args:
        instructions: (Sequence[Instruction] | Cursor) Instructions to view

    Attributes:
        size: (int) Number of instructions in view
    """

    __slots__ = ("_items", "_start", "_stop")

    def __init__(self, instructions=()):
        if isinstance(instructions, Cursor):
            self._items = instructions._items
            self._start = instructions._start
            self._stop = instructions._stop
            return
        self._items = tuple(instructions)
        self._start = 0
        self._stop = len(self._items)

    @classmethod
    def _view(cls, items, start, stop):
        cursor = cls.__new__(cls)
        cursor._items = items
        cursor._start = start
        cursor._stop = stop
        return cursor

    def __repr__(self):
        head = self.opcode.name if self._stop > self._start else "<end>"
        return f"Cursor<{self._start}:{self._stop} at {head}>"

    def __len__(self):
        return self._stop - self._start

    def __bool__(self):
        return self._stop > self._start

    def __iter__(self):
        for index in range(self._start, self._stop):
            yield self._items[index]

    def __getitem__(self, index):
        if not isinstance(index, int):
            raise TypeError("Cursor indices must be integers, use slice()")
        if index < 0 or index >= self._stop - self._start:
            raise IndexError(f"Cursor index {index} out of range ({len(self)})")
        return self._items[self._start + index]

    @property
    def size(self):
        """(int) Number of instructions in view."""
        return self._stop - self._start

    @property
    def empty(self):
        """(bool) True when no instructions remain."""
        return self._stop <= self._start

    @property
    def position(self):
        """(int) Offset of the head within the original stream."""
        return self._start

    @property
    def head(self):
        """(Instruction) First instruction in view.

        Raises:
            IndexError: The cursor is empty
        """
        return self[0]

    @property
    def opcode(self):
        """(OpCode | None) Opcode of the head, None when empty."""
        if self._stop <= self._start:
            return None
        return self._items[self._start].opcode

    def at(self, *opcodes):
        """Check if the head is one of the base opcodes (named variants match)."""
        if self._stop <= self._start:
            return False
        return self._items[self._start].is_a(*opcodes)

    def slice(self, offset, length=None):
        """Sub-view starting at offset, optionally limited to length items.

        Raises:
            IndexError: The requested range leaves this view
        """
        size = self._stop - self._start
        if length is None:
            length = size - offset
        if offset < 0 or length < 0 or offset + length > size:
            raise IndexError(
                f"Cursor slice({offset}, {length}) out of range ({size})")
        start = self._start + offset
        return Cursor._view(self._items, start, start + length)

    def advance(self, count=1):
        """Cursor past the next count instructions."""
        return self.slice(count)

    def take(self, count):
        """Tuple of the next count instructions."""
        return tuple(self.slice(0, count))

    def consumed_until(self, later):
        """Tuple of instructions between this cursor and a later one."""
        if later._items is not self._items or later._start < self._start:
            raise ValueError("Cursor is not a later view of the same stream")
        return self._items[self._start:later._start]

    def find(self, *opcodes):
        """Offset of the nearest instruction with one of the opcodes.

        Returns:
            (int | None) Offset from the head, or None when not found
        """
        for offset, instruction in enumerate(self):
            if instruction.is_a(*opcodes):
                return offset
        return None


def as_cursor(instructions):
    """Wrap instructions in a Cursor unless they already are one."""
    if isinstance(instructions, Cursor):
        return instructions
    if isinstance(instructions, str):
        return Cursor(prpscene.parse_listing(instructions))
    return Cursor(instructions)
