from __future__ import annotations

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Dict


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "scripts").mkdir()
    (root / "scripts" / "ui").mkdir()
    content = b"hint 'hello';\n" * 20
    (root / "scripts" / "init.sqf").write_bytes(content)
    files["scripts/init.sqf"] = content

    bin_data = os.urandom(2048)
    (root / "scripts" / "ui" / "logo.paa").write_bytes(bin_data)
    files["scripts/ui/logo.paa"] = bin_data

    (root / "scripts" / "ui" / "empty.hpp").write_bytes(b"")
    files["scripts/ui/empty.hpp"] = b""

    cfg = b"class CfgPatches { class fixture {}; };\n"
    (root / "config.cpp").write_bytes(cfg)
    files["config.cpp"] = cfg
    return files


def _compare_trees(expected: Dict[str, bytes], dst: Path):
    found = {}
    for root, _dirs, names in os.walk(dst):
        for fn in names:
            full = Path(root) / fn
            found[full.relative_to(dst).as_posix()] = full.read_bytes()
    assert found == expected, f"Extracted tree differs: {sorted(found)} != {sorted(expected)}"


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "pbo.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def test_pack_list_verify_unpack(self):
        tmp_src = tempfile.TemporaryDirectory()
        tmp_workspace = tempfile.TemporaryDirectory()
        self.addCleanup(tmp_src.cleanup)
        self.addCleanup(tmp_workspace.cleanup)

        src_root = Path(tmp_src.name)
        workspace = Path(tmp_workspace.name)
        files = _build_fixture_tree(src_root)

        archive = workspace / "fixture.pbo"
        pack_proc = self.run_cli(
            ["pack", str(archive), str(src_root), "--property", "prefix=x\\fixture", "--property", "version=1"]
        )
        self.assertIn("Done: 4 files", pack_proc.stdout)

        verify_proc = self.run_cli(["verify", str(archive)])
        self.assertIn("OK", verify_proc.stdout)

        list_proc = self.run_cli(["list", str(archive)])
        names = [line.split("\t")[-1] for line in list_proc.stdout.splitlines()]
        self.assertEqual(["config.cpp", "scripts/init.sqf", "scripts/ui/empty.hpp", "scripts/ui/logo.paa"], names)

        info_proc = self.run_cli(["info", str(archive)])
        self.assertIn("Signature: yes", info_proc.stdout)
        self.assertIn("prefix=x\\fixture", info_proc.stdout)
        self.assertIn("Entries: 4", info_proc.stdout)

        extract_dir = workspace / "extract"
        extract_dir.mkdir()
        self.run_cli(["unpack", str(archive), "--outdir", str(extract_dir)])
        _compare_trees(files, extract_dir)

    def test_unpack_selected_paths_and_conflicts(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            src = root / "src"
            src.mkdir()
            _build_fixture_tree(src)
            archive = root / "arc.pbo"
            self.run_cli(["pack", str(archive), str(src), "--quiet"])

            out_sel = root / "ex_sel"
            out_sel.mkdir()
            self.run_cli(["unpack", str(archive), "--outdir", str(out_sel), "scripts/ui"])
            self.assertTrue((out_sel / "scripts" / "ui" / "logo.paa").exists())
            self.assertFalse((out_sel / "config.cpp").exists())

            out_skip = root / "ex_skip"
            out_skip.mkdir()
            (out_skip / "config.cpp").write_text("beta")
            skip_proc = self.run_cli(["unpack", str(archive), "--outdir", str(out_skip), "--exists", "skip"])
            self.assertIn("skipping: config.cpp", skip_proc.stdout)
            self.assertEqual((out_skip / "config.cpp").read_text(), "beta")

            out_rename = root / "ex_rename"
            out_rename.mkdir()
            (out_rename / "config.cpp").write_text("beta")
            rename_proc = self.run_cli(["unpack", str(archive), "--outdir", str(out_rename)])
            self.assertIn("renamed to", rename_proc.stdout)
            self.assertTrue((out_rename / "config (1).cpp").exists())

            out_fail = root / "ex_fail"
            out_fail.mkdir()
            (out_fail / "config.cpp").write_text("beta")
            fail_proc = self.run_cli(
                ["unpack", str(archive), "--outdir", str(out_fail), "--exists", "fail"], expect=2
            )
            self.assertIn("Destination exists", fail_proc.stderr)

    def test_verify_detects_corruption_and_missing_checksum(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            src = root / "src"
            src.mkdir()
            _build_fixture_tree(src)

            plain = root / "plain.pbo"
            self.run_cli(["pack", str(plain), str(src), "--no-checksum"])
            no_sum = self.run_cli(["verify", str(plain)], expect=1)
            self.assertIn("No checksum", no_sum.stdout)

            archive = root / "arc.pbo"
            self.run_cli(["pack", str(archive), str(src)])
            raw = bytearray(archive.read_bytes())
            raw[-30] ^= 0xFF
            archive.write_bytes(bytes(raw))
            bad = self.run_cli(["verify", str(archive)], expect=1)
            self.assertIn("FAIL", bad.stdout)

    def test_malformed_archive_reports_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            broken = Path(tmp) / "broken.pbo"
            broken.write_bytes(b"config.cpp\x00\x00\x00")
            proc = self.run_cli(["list", str(broken)], expect=2)
            self.assertIn("malformed archive", proc.stderr)

            missing = self.run_cli(["info", str(Path(tmp) / "nope.pbo")], expect=2)
            self.assertIn("Error", missing.stderr)

    def test_bad_property_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "src").mkdir()
            proc = self.run_cli(["pack", str(root / "a.pbo"), str(root / "src"), "--property", "novalue"], expect=2)
            self.assertIn("KEY=VALUE", proc.stderr)


if __name__ == "__main__":
    unittest.main()
