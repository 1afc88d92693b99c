from __future__ import annotations

import os

from .constants import ENTRY_PATH_SEPARATOR


def norm_path(p: str) -> str:
    """Normalize archive paths to a canonical forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    return ENTRY_PATH_SEPARATOR.join(parts)


def join_entry_path(prefix: str, name: str) -> str:
    """Join an entry path prefix and a base name with the archive separator."""
    prefix = norm_path(prefix)
    name = norm_path(name)
    if not prefix:
        return name
    return prefix + ENTRY_PATH_SEPARATOR + name


def entry_fs_path(outdir: str, entry_name: str) -> str:
    """Map an entry name (either separator) to a path under outdir."""
    rel = norm_path(entry_name)
    if not rel:
        raise ValueError(f"Entry name {entry_name!r} does not name a file")
    return os.path.join(outdir, *rel.split("/"))
