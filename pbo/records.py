from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .binio import PboBinaryReader, PboBinaryWriter
from .constants import PackingMethod
from .errors import UnknownPackingMethodError


# Header entry on disk:
#  - name (UTF-8, NUL terminated)
#  - packing_method u32
#  - original_size u32
#  - reserved u32
#  - timestamp u32
#  - data_size u32
# data_offset is derived while walking the header and never stored.


@dataclass
class HeaderEntry:
    name: str = ""
    packing_method: PackingMethod = PackingMethod.UNCOMPRESSED
    original_size: int = 0
    reserved: int = 0
    timestamp: int = 0
    data_size: int = 0
    data_offset: int = 0

    @classmethod
    def signature(cls) -> "HeaderEntry":
        return cls(name="", packing_method=PackingMethod.PRODUCT_MARKER)

    @classmethod
    def boundary(cls) -> "HeaderEntry":
        return cls(name="", packing_method=PackingMethod.UNCOMPRESSED)

    def is_signature(self) -> bool:
        return self.name == "" and self.packing_method == PackingMethod.PRODUCT_MARKER

    def is_boundary(self) -> bool:
        return self.name == "" and self.original_size == 0 and self.data_size == 0


@dataclass
class ArchiveInfo:
    signature: Optional[HeaderEntry] = None
    # Ordered pairs; the format allows repeated keys
    extensions: List[Tuple[str, str]] = field(default_factory=list)
    records: List[HeaderEntry] = field(default_factory=list)
    checksum: Optional[bytes] = None
    data_block_start: int = 0
    data_block_end: int = 0

    @property
    def header_end(self) -> int:
        return self.data_block_start

    def get_extension(self, key: str) -> Optional[str]:
        for k, v in self.extensions:
            if k == key:
                return v
        return None

    def find(self, name: str) -> Optional[HeaderEntry]:
        for e in self.records:
            if e.name == name:
                return e
        return None

    def resolve_offsets(self, header_end: int) -> None:
        """Lay out data blocks contiguously after the header, in record order."""
        offset = header_end
        for e in self.records:
            e.data_offset = offset
            offset += e.data_size
        self.data_block_start = header_end
        self.data_block_end = offset


def read_entry(reader: PboBinaryReader) -> HeaderEntry:
    name = reader.read_string()
    tag = reader.read_uint32()
    try:
        method = PackingMethod(tag)
    except ValueError:
        raise UnknownPackingMethodError(
            f"Unknown packing method 0x{tag:08x} for entry {name!r}"
        ) from None
    original_size = reader.read_uint32()
    reserved = reader.read_uint32()
    timestamp = reader.read_uint32()
    data_size = reader.read_uint32()
    return HeaderEntry(
        name=name,
        packing_method=method,
        original_size=original_size,
        reserved=reserved,
        timestamp=timestamp,
        data_size=data_size,
    )


def write_entry(writer: PboBinaryWriter, entry: HeaderEntry) -> None:
    writer.write_string(entry.name)
    writer.write_uint32(int(entry.packing_method))
    writer.write_uint32(entry.original_size)
    writer.write_uint32(entry.reserved)
    writer.write_uint32(entry.timestamp)
    writer.write_uint32(entry.data_size)
