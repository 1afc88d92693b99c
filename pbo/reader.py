from __future__ import annotations

import os
from typing import BinaryIO, List, Optional

from .binio import PboBinaryReader
from .constants import DEFAULT_COPY_CHUNK_SIZE, PackingMethod
from .errors import DataSizeMismatchError, PboError, UnsupportedPackingError
from .hashutil import sha1_stream
from .records import ArchiveInfo, HeaderEntry
from .service import PboInfoService


class ArchiveReader:
    def __init__(self, path: str, chunk_size: int = DEFAULT_COPY_CHUNK_SIZE):
        self.path = path
        self.f: Optional[BinaryIO] = None
        self.info: Optional[ArchiveInfo] = None
        self.size: int = 0
        self.chunk_size = chunk_size
        self.service = PboInfoService()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.path, "rb")
        try:
            reader = PboBinaryReader(self.f)
            self.size = reader.length()
            self.info = self.service.read_archive_info(reader)
        except (PboError, OSError, ValueError) as exc:
            # Ensure file handle is closed on failure to avoid leaks
            self.close()
            raise exc

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def list(self) -> List[HeaderEntry]:
        return self.info.records if self.info is not None else []

    def _seek_block(self, entry: HeaderEntry) -> None:
        if self.f is None:
            raise RuntimeError("Archive not open")
        if entry.packing_method == PackingMethod.COMPRESSED:
            raise UnsupportedPackingError(f"{entry.name}: compressed entries are not supported")
        if entry.data_offset + entry.data_size > self.size:
            raise DataSizeMismatchError(
                f"{entry.name}: data block [{entry.data_offset}, {entry.data_offset + entry.data_size}) "
                f"runs past end of archive ({self.size} bytes)"
            )
        self.f.seek(entry.data_offset)

    def read(self, entry: HeaderEntry) -> bytes:
        self._seek_block(entry)
        return self.f.read(entry.data_size)

    def extract(self, entry: HeaderEntry, out_path: str):
        self._seek_block(entry)
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        remaining = entry.data_size
        with open(out_path, "wb") as wf:
            while remaining > 0:
                buf = self.f.read(min(self.chunk_size, remaining))
                if not buf:
                    raise DataSizeMismatchError(f"{entry.name}: unexpected end of data block")
                wf.write(buf)
                remaining -= len(buf)

    def verify(self) -> Optional[bool]:
        """Check the SHA-1 trailer against header+data.

        Returns None when the archive carries no checksum.
        """
        if self.f is None:
            raise RuntimeError("Archive not open")
        if self.info.checksum is None:
            return None
        self.f.seek(0)
        return sha1_stream(self.f, self.info.data_block_end, self.chunk_size) == self.info.checksum
