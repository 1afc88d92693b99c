"""
pbo — reader/writer for PBO game asset archives.

Layout handled by this package:

- Optional signature entry (empty name, "Vers" packing tag) followed by
  key/value header extensions and an empty terminator.
- Header entries (name, packing method, sizes, timestamp), closed by an
  all-zero boundary entry. Data offsets are derived, never stored.
- Data blocks in entry order, optionally followed by 0x00 + SHA-1 checksum.

The header codec lives in pbo.service; pbo.writer/pbo.reader add data blocks
and the checksum trailer; pbo.cli exposes pack/unpack/list/info/verify.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "binio",
    "records",
    "service",
    "writer",
    "reader",
]
