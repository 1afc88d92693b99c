from __future__ import annotations

import os
import struct
from typing import BinaryIO

from .constants import TEXT_ENCODING, UINT32_MAX
from .errors import StringEncodingError, TruncatedArchiveError


_U32 = struct.Struct("<I")


class PboBinaryReader:
    """Reads PBO primitives (cstrings, u32 LE, raw runs) from a binary stream.

    The reader does not own the stream; closing it is left to the caller.
    """

    def __init__(self, stream: BinaryIO):
        if stream is None:
            raise ValueError("reader: an underlying stream is required")
        self.stream = stream

    def read_bytes(self, n: int) -> bytes:
        if n < 0:
            raise ValueError("n must be non-negative")
        b = self.stream.read(n)
        if len(b) != n:
            raise TruncatedArchiveError(
                f"Unexpected EOF: wanted {n} byte(s) at offset {self.tell() - len(b)}, got {len(b)}"
            )
        return b

    def read_byte(self) -> int:
        return self.read_bytes(1)[0]

    def read_uint32(self) -> int:
        (v,) = _U32.unpack(self.read_bytes(_U32.size))
        return v

    def read_string(self) -> str:
        start = self.tell()
        buf = bytearray()
        while True:
            c = self.stream.read(1)
            if not c:
                raise TruncatedArchiveError(f"Unterminated string starting at offset {start}")
            if c == b"\x00":
                break
            buf += c
        try:
            return buf.decode(TEXT_ENCODING)
        except UnicodeDecodeError as exc:
            raise StringEncodingError(f"String at offset {start} is not valid UTF-8: {exc}") from exc

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int) -> None:
        self.stream.seek(offset, os.SEEK_SET)

    def length(self) -> int:
        """Total stream length; the current position is preserved."""
        pos = self.stream.tell()
        end = self.stream.seek(0, os.SEEK_END)
        self.stream.seek(pos, os.SEEK_SET)
        return end


class PboBinaryWriter:
    """Writes PBO primitives to a binary stream it does not own."""

    def __init__(self, stream: BinaryIO):
        if stream is None:
            raise ValueError("writer: an underlying stream is required")
        self.stream = stream

    def write_bytes(self, data: bytes) -> None:
        self.stream.write(data)

    def write_uint32(self, value: int) -> None:
        if not 0 <= value <= UINT32_MAX:
            raise ValueError(f"value {value} out of range for u32")
        self.stream.write(_U32.pack(value))

    def write_string(self, value: str) -> None:
        try:
            raw = value.encode(TEXT_ENCODING)
        except UnicodeEncodeError as exc:
            raise StringEncodingError(f"String {value!r} cannot be encoded as UTF-8: {exc}") from exc
        if b"\x00" in raw:
            raise StringEncodingError(f"String {value!r} contains an embedded NUL")
        self.stream.write(raw + b"\x00")

    def tell(self) -> int:
        return self.stream.tell()

    def flush(self) -> None:
        self.stream.flush()
