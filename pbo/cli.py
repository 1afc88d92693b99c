from __future__ import annotations

import argparse
import os
import sys
import time
from typing import List, Optional

from pbo.constants import PackingMethod
from pbo.errors import PboError, PboFormatError
from pbo.pathutil import entry_fs_path, norm_path
from pbo.reader import ArchiveReader
from pbo.writer import ArchiveWriter


_METHOD_LABELS = {
    PackingMethod.UNCOMPRESSED: "stored",
    PackingMethod.COMPRESSED: "packed",
    PackingMethod.PRODUCT_MARKER: "vers",
}


def _parse_property(text: str) -> tuple[str, str]:
    """Split a KEY=VALUE command line property."""
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise ValueError(f"Invalid property {text!r}; expected KEY=VALUE")
    return key, value


def _next_nonconflicting_path(path: str) -> str:
    if not os.path.lexists(path):
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


def cmd_pack(
    output: str,
    directory: str,
    *,
    properties: Optional[List[str]] = None,
    prefix: str = "",
    checksum: bool = True,
    quiet: bool = False,
) -> bool:
    """Pack a directory tree into a new archive.

    Args:
        output: Path of the .pbo file to write.
        directory: Directory whose files become entries (sorted by entry name).
        properties: KEY=VALUE header extensions, written in the given order.
        prefix: Entry path prefix prepended to every entry name.
        checksum: Append the 0x00 + SHA-1 trailer.
    """
    t0 = time.time()
    with ArchiveWriter(output, checksum=checksum) as w:
        for prop in properties or []:
            w.set_property(*_parse_property(prop))
        w.add_dir(directory, prefix=prefix)
        info = w.finalize()

    if not quiet:
        for e in info.records:
            print(f"    packing: {e.name} ({e.data_size} bytes)")
    dt = max(0.000001, time.time() - t0)
    total = info.data_block_end - info.data_block_start
    mib = total / (1024.0 * 1024.0)
    print(
        f"Done: {len(info.records)} files; {mib:.2f} MiB in {dt:.1f}s; "
        f"checksum={'yes' if info.checksum else 'no'}"
    )
    return True


def cmd_list(archive: str) -> bool:
    """List archive entries as method, size, timestamp and name."""
    with ArchiveReader(archive) as r:
        entries = r.list()
    for e in entries:
        label = _METHOD_LABELS.get(e.packing_method, str(int(e.packing_method)))
        print(f"{label}\t{e.data_size}\t{e.timestamp}\t{e.name}")
    return True


def cmd_info(archive: str) -> bool:
    with ArchiveReader(archive) as r:
        info = r.info
        size = r.size
    print(f"Archive: {archive}")
    print(f"  Size: {size}")
    print(f"  Signature: {'yes' if info.signature is not None else 'no'}")
    if info.extensions:
        print("  Properties:")
        for k, v in info.extensions:
            print(f"    {k}={v}")
    print(f"  Entries: {len(info.records)}")
    print(f"    Compressed: {len([e for e in info.records if e.packing_method == PackingMethod.COMPRESSED])}")
    print(f"  Data block: {info.data_block_start}-{info.data_block_end}")
    print(f"  Checksum: {info.checksum.hex() if info.checksum else 'none'}")
    return True


def cmd_verify(archive: str) -> bool:
    """Verify the SHA-1 trailer.

    Prints:
        "OK" on match, "FAIL" on mismatch, "No checksum" when the archive has none.
    """
    with ArchiveReader(archive) as r:
        ok = r.verify()
    if ok is None:
        print("No checksum")
        return False
    print("OK" if ok else "FAIL")
    return ok


def cmd_unpack(
    archive: str,
    *,
    outdir: str = ".",
    paths: Optional[List[str]] = None,
    exists: str = "rename",
    quiet: bool = False,
) -> bool:
    """Extract stored entries from an archive to a directory."""
    t0 = time.time()
    processed_files = 0
    processed_bytes = 0
    skipped_entries = 0
    renamed_entries = 0
    with ArchiveReader(archive) as r:
        entries = r.list()
        wanted = [norm_path(p) for p in paths or []]
        if wanted:
            entries = [
                e for e in entries
                if any(norm_path(e.name) == rp or norm_path(e.name).startswith(rp + "/") for rp in wanted)
            ]
        total_files = len(entries)

        for e in entries:
            if e.packing_method == PackingMethod.COMPRESSED:
                print(f"Warning: skipping compressed entry {e.name}", file=sys.stderr)
                skipped_entries += 1
                continue
            dst = entry_fs_path(outdir or ".", e.name)
            actual_dst = dst
            rename_note = None
            if os.path.lexists(actual_dst):
                if exists == "overwrite":
                    if os.path.isdir(actual_dst) and not os.path.islink(actual_dst):
                        raise RuntimeError(f"Cannot overwrite directory with file: {actual_dst}")
                elif exists == "skip":
                    print(f"    skipping: {e.name} (exists)")
                    skipped_entries += 1
                    continue
                elif exists == "rename":
                    actual_dst = _next_nonconflicting_path(actual_dst)
                    rename_note = actual_dst
                else:
                    raise RuntimeError(f"Destination exists: {actual_dst}")
            processed_files += 1
            processed_bytes += e.data_size
            if not quiet:
                print(f"  unpacking: {processed_files:>4}/{total_files:<4} {e.name}")
            r.extract(e, actual_dst)
            if rename_note:
                print(f"       note: renamed to {actual_dst}")
                renamed_entries += 1

    dt = max(0.000001, time.time() - t0)
    mib = processed_bytes / (1024.0 * 1024.0)
    print(
        f"Done: extracted {processed_files}/{total_files} files ({mib:.2f} MiB) in {dt:.1f}s; "
        f"skipped={skipped_entries} renamed={renamed_entries}"
    )
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(prog="pbo", description="PBO archive tool")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack a directory into an archive")
    ap_pack.add_argument("output", help="Output .pbo path")
    ap_pack.add_argument("directory", help="Directory to pack")
    ap_pack.add_argument(
        "--property",
        dest="properties",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Header extension property (repeatable, order preserved)",
    )
    ap_pack.add_argument("--prefix", default="", help="Entry path prefix for every packed file")
    ap_pack.add_argument("--no-checksum", action="store_true", help="Do not append the SHA-1 trailer")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")

    ap_info = sub.add_parser("info", help="Show archive header information")
    ap_info.add_argument("archive", help="Archive path")

    ap_verify = sub.add_parser("verify", help="Verify the archive checksum")
    ap_verify.add_argument("archive", help="Archive path")

    ap_unpack = sub.add_parser("unpack", help="Extract files")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("paths", nargs="*", help="Specific entry paths to extract (files or directories)")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap_unpack.add_argument(
        "--exists",
        choices=["overwrite", "skip", "rename", "fail"],
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite (truncate/replace), "
            "skip (do not extract that entry), rename (append ' (n)' before extension), or fail (abort). "
            "Default: rename"
        ),
    )

    args = ap.parse_args(argv)
    try:
        if args.cmd == "pack":
            cmd_pack(
                args.output,
                args.directory,
                properties=args.properties,
                prefix=args.prefix,
                checksum=not args.no_checksum,
                quiet=args.quiet,
            )
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, paths=args.paths, exists=args.exists, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "verify":
            sys.exit(0 if cmd_verify(args.archive) else 1)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except PboFormatError as e:
        print(f"Error: malformed archive: {e}", file=sys.stderr)
        sys.exit(2)
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (PboError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
