from enum import IntEnum


class PackingMethod(IntEnum):
    """Packing tag stored in every header entry (u32, little endian)."""

    UNCOMPRESSED = 0x00000000
    COMPRESSED = 0x43707273     # "srpC"
    PRODUCT_MARKER = 0x56657273  # "sreV", marks the signature entry


UINT32_MAX = 0xFFFFFFFF

# Trailer: one zero byte followed by a SHA-1 digest of everything before it
CHECKSUM_SIZE = 20
CHECKSUM_SKIP_SIZE = 1
CHECKSUM_TRAILER_SIZE = CHECKSUM_SKIP_SIZE + CHECKSUM_SIZE

TEXT_ENCODING = "utf-8"
ENTRY_PATH_SEPARATOR = "/"

DEFAULT_COPY_CHUNK_SIZE = 1_048_576  # 1 MiB
