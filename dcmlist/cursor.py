"""Sequential little-endian reads over a seekable binary stream"""
from __future__ import annotations
import io
from struct import Struct
from typing import BinaryIO

from .util import FormatError, TruncatedDataError


_u16_unpack = Struct("<H").unpack
_u32_unpack = Struct("<L").unpack


class ByteCursor:
    """Read fixed width integers and raw bytes from `fp`

    Every read either returns exactly the number of bytes requested or raises
    a `TruncatedDataError`, we never pad out short reads.
    """

    def __init__(self, fp: BinaryIO):
        self._fp = fp
        start = fp.tell()
        self._size = fp.seek(0, io.SEEK_END)
        fp.seek(start)

    def tell(self) -> int:
        return self._fp.tell()

    def at_end(self) -> bool:
        return self._fp.tell() >= self._size

    def read_bytes(self, n: int) -> bytes:
        if n == 0:
            return b""
        offset = self._fp.tell()
        # Fail before reading when a bogus length can't be satisfied
        avail = max(self._size - offset, 0)
        if n > avail:
            raise TruncatedDataError(
                f"Needed {n} bytes at offset {offset}, only {avail} available"
            )
        res = self._fp.read(n)
        if len(res) != n:
            raise TruncatedDataError(
                f"Needed {n} bytes at offset {offset}, only {len(res)} available"
            )
        return res

    def read_u16_le(self) -> int:
        return _u16_unpack(self.read_bytes(2))[0]

    def read_u32_le(self) -> int:
        return _u32_unpack(self.read_bytes(4))[0]

    def seek_relative(self, delta: int) -> None:
        offset = self._fp.tell() + delta
        if offset < 0:
            raise FormatError(f"Can't seek to negative offset {offset}")
        self._fp.seek(offset)
