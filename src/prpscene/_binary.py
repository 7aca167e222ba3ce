"""Little-endian reader over binary file data"""

__all__ = ["BinaryReader"]

import struct

import prpscene


_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_F32 = struct.Struct("<f")


class BinaryReader:
    """Sequential reader with bounds checks.

    Every read past the end of the data raises DecodeError instead of
    returning short data.

    Args:
        data: (bytes) Data to read
        offset: (int) Initial read position
        name: (str) Label used in error messages
    """

    __slots__ = ("data", "name", "_pos")

    def __init__(self, data, offset=0, name="data"):
        self.data = bytes(data)
        self.name = name
        self._pos = 0
        self.seek(offset)

    def __repr__(self):
        return f"BinaryReader<{self.name} {self._pos}/{len(self.data)}>"

    def tell(self):
        return self._pos

    def remaining(self):
        return len(self.data) - self._pos

    def seek(self, offset):
        if offset < 0 or offset > len(self.data):
            raise prpscene.DecodeError(
                f"{self.name}: seek to {offset} outside {len(self.data)} bytes")
        self._pos = offset

    def at(self, offset):
        """Independent reader over the same data at another position."""
        return BinaryReader(self.data, offset, self.name)

    def read_bytes(self, count):
        if count < 0 or self._pos + count > len(self.data):
            raise prpscene.DecodeError(
                f"{self.name}: truncated reading {count} bytes at offset {self._pos}")
        chunk = self.data[self._pos:self._pos + count]
        self._pos += count
        return chunk

    def _unpack(self, fmt):
        return fmt.unpack(self.read_bytes(fmt.size))[0]

    def read_u8(self):
        return self._unpack(_U8)

    def read_u16(self):
        return self._unpack(_U16)

    def read_u32(self):
        return self._unpack(_U32)

    def read_i32(self):
        return self._unpack(_I32)

    def read_f32(self):
        return self._unpack(_F32)

    def read_cstring(self, encoding="latin-1"):
        """Read a NUL terminated string, consuming the terminator."""
        end = self.data.find(b"\0", self._pos)
        if end < 0:
            raise prpscene.DecodeError(
                f"{self.name}: unterminated string at offset {self._pos}")
        text = self.data[self._pos:end].decode(encoding)
        self._pos = end + 1
        return text
