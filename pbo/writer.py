from __future__ import annotations

import io
import os
from typing import BinaryIO, List, Optional

from .binio import PboBinaryWriter
from .constants import DEFAULT_COPY_CHUNK_SIZE
from .errors import DataSizeMismatchError
from .hashutil import new_sha1
from .pathutil import join_entry_path
from .records import ArchiveInfo, HeaderEntry
from .service import PboInfoService
from .timestamps import TimestampProvider


class ArchiveWriter:
    """Packs files into a PBO archive.

    Entries are collected first because the header precedes the data blocks;
    finalize() writes the header, streams every data block in record order and
    appends the 0x00 + SHA-1 trailer.
    """

    def __init__(
        self,
        out_path: str,
        timestamp_provider: Optional[TimestampProvider] = None,
        checksum: bool = True,
        chunk_size: int = DEFAULT_COPY_CHUNK_SIZE,
    ):
        self.out_path = out_path
        self.f: Optional[BinaryIO] = None
        self.service = PboInfoService(timestamp_provider)
        self.checksum = checksum
        self.chunk_size = chunk_size
        self.info = ArchiveInfo()
        self._sources: List[str] = []
        self._names = set()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.out_path, "wb")

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def set_property(self, key: str, value: str):
        """Append a header extension pair; extensions require a signature entry."""
        if not key:
            raise ValueError("Extension key may not be empty")
        if self.info.signature is None:
            self.info.signature = HeaderEntry.signature()
        self.info.extensions.append((key, value))

    def add_dir(self, directory: str, prefix: str = ""):
        """Add every file under directory, in sorted entry-name order."""
        collected = self.service.collect_files(directory)
        if self.info.signature is None:
            self.info.signature = HeaderEntry.signature()
        for e, fs_path in collected:
            # The output file may live inside the packed tree
            if os.path.exists(self.out_path) and os.path.samefile(fs_path, self.out_path):
                continue
            e.name = join_entry_path(prefix, e.name)
            self._append(e, fs_path)

    def add_file(self, fs_path: str, entry_path: str = ""):
        self._append(self.service.collect_entry(fs_path, entry_path), os.fspath(fs_path))

    def _append(self, entry: HeaderEntry, fs_path: str):
        if entry.name in self._names:
            raise ValueError(f"Duplicate entry name: {entry.name}")
        self._names.add(entry.name)
        self.info.records.append(entry)
        self._sources.append(fs_path)

    def finalize(self) -> ArchiveInfo:
        """Write the archive and return its resolved description."""
        if self.f is None:
            raise RuntimeError("Archive not open")
        header = io.BytesIO()
        self.service.write_archive_info(PboBinaryWriter(header), self.info)
        header_bytes = header.getvalue()

        h = new_sha1()
        start = self.f.tell()
        self.f.write(header_bytes)
        h.update(header_bytes)
        self.info.resolve_offsets(start + len(header_bytes))

        for entry, src in zip(self.info.records, self._sources):
            self._copy_block(entry, src, h)

        if self.checksum:
            digest = h.digest()
            self.f.write(b"\x00" + digest)
            self.info.checksum = digest
        else:
            self.info.checksum = None
        self.f.flush()
        return self.info

    def _copy_block(self, entry: HeaderEntry, src: str, h) -> None:
        remaining = entry.data_size
        with open(src, "rb") as rf:
            while remaining > 0:
                buf = rf.read(min(self.chunk_size, remaining))
                if not buf:
                    break
                self.f.write(buf)
                h.update(buf)
                remaining -= len(buf)
            if remaining or rf.read(1):
                raise DataSizeMismatchError(
                    f"{src} changed size after collection (expected {entry.data_size} bytes)"
                )
