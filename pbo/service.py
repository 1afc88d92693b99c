from __future__ import annotations

import os
from typing import List, Optional, Tuple

from .binio import PboBinaryReader, PboBinaryWriter
from .constants import CHECKSUM_SIZE, CHECKSUM_TRAILER_SIZE, PackingMethod
from .pathutil import join_entry_path, norm_path
from .records import ArchiveInfo, HeaderEntry, read_entry, write_entry
from .timestamps import TimestampProvider, file_mtime


class PboInfoService:
    """Header codec for PBO archives.

    Reads and writes the header region (signature, extensions, entries and the
    boundary entry) and builds header descriptions from files on disk. Data
    blocks and the checksum trailer are handled by ArchiveWriter/ArchiveReader.
    The service keeps no state between calls.
    """

    def __init__(self, timestamp_provider: Optional[TimestampProvider] = None):
        self.timestamp_provider = timestamp_provider or file_mtime

    def read_archive_info(self, reader: PboBinaryReader) -> ArchiveInfo:
        """Parse the header at the reader's position and look for a checksum trailer.

        Data offsets are assigned by accumulating data sizes from the position
        right after the boundary entry.
        """
        if reader is None:
            raise ValueError("reader is required")
        info = ArchiveInfo()

        entry = read_entry(reader)
        if entry.is_signature():
            info.signature = entry
            while True:
                key = reader.read_string()
                if not key:
                    break
                info.extensions.append((key, reader.read_string()))
            entry = read_entry(reader)

        while not entry.is_boundary():
            info.records.append(entry)
            entry = read_entry(reader)

        info.resolve_offsets(reader.tell())
        info.checksum = self._read_checksum(reader, info.data_block_end)
        return info

    def _read_checksum(self, reader: PboBinaryReader, data_block_end: int) -> Optional[bytes]:
        # Any trailer other than exactly 0x00 + 20 bytes means "no checksum"
        if reader.length() - data_block_end != CHECKSUM_TRAILER_SIZE:
            return None
        reader.seek(data_block_end)
        if reader.read_byte() != 0:
            return None
        return reader.read_bytes(CHECKSUM_SIZE)

    def write_archive_info(self, writer: PboBinaryWriter, info: ArchiveInfo) -> None:
        """Write header metadata only; data_offset is never written."""
        if writer is None:
            raise ValueError("writer is required")
        if info is None:
            raise ValueError("info is required")

        if info.signature is not None:
            write_entry(writer, info.signature)
            for key, value in info.extensions:
                writer.write_string(key)
                writer.write_string(value)
            writer.write_string("")

        for entry in info.records:
            write_entry(writer, entry)

        write_entry(writer, HeaderEntry.boundary())

    def collect_archive_info(self, directory: str) -> ArchiveInfo:
        """Describe every file under directory, sorted by entry name.

        The result always carries a signature entry and no extensions; data
        offsets stay unresolved until the archive is laid out.
        """
        records = [entry for entry, _fs_path in self.collect_files(directory)]
        return ArchiveInfo(signature=HeaderEntry.signature(), extensions=[], records=records)

    def collect_files(self, directory: str) -> List[Tuple[HeaderEntry, str]]:
        """Collected entries paired with the file each one was read from, sorted by entry name."""
        if not directory:
            raise ValueError("directory is required")
        directory = os.fspath(directory)
        if not os.path.isdir(directory):
            raise NotADirectoryError(f"Not a directory: {directory}")

        collected = []
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            rel = os.path.relpath(root, directory)
            prefix = "" if rel == "." else norm_path(rel)
            for fn in sorted(files):
                fs_path = os.path.join(root, fn)
                if not os.path.isfile(fs_path):
                    continue
                collected.append((self.collect_entry(fs_path, prefix), fs_path))
        collected.sort(key=lambda pair: pair[0].name)
        return collected

    def collect_entry(self, file_path: str, entry_path: str) -> HeaderEntry:
        if not file_path:
            raise ValueError("file_path is required")
        if entry_path is None:
            raise ValueError("entry_path is required")
        file_path = os.fspath(file_path)
        size = os.path.getsize(file_path)
        return HeaderEntry(
            name=join_entry_path(entry_path, os.path.basename(file_path)),
            packing_method=PackingMethod.UNCOMPRESSED,
            original_size=size,
            reserved=0,
            timestamp=int(self.timestamp_provider(file_path)),
            data_size=size,
            data_offset=0,
        )
