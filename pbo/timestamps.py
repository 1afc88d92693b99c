from __future__ import annotations

import os
from typing import Callable

from .constants import UINT32_MAX


# Given a file path, return the integer stored in the entry's timestamp field
TimestampProvider = Callable[[str], int]


def file_mtime(path: str) -> int:
    """Modification time in whole seconds since the epoch, clamped to u32."""
    mtime = int(os.stat(path).st_mtime)
    return min(max(mtime, 0), UINT32_MAX)


def zero_timestamp(path: str) -> int:
    return 0
