"""Tests for source tree scanning and bounded reads."""

import os
import sys
from pathlib import Path

import pytest

from depgraph_cli import config
from depgraph_cli.errors import FileAccessError, ScanRootError
from depgraph_cli.scanner import normalize_path, read_source, scan


def _scan(root: Path):
    return [p.relative_to(root).as_posix() for p in scan(root, config.EXCLUDE_DIRS, config.SUPPORTED_EXTENSIONS)]


class TestScan:
    """Directory walking rules."""

    def test_filters_extensions_and_excluded_dirs(self, write_tree):
        root = write_tree({
            "a.ts": "",
            "b.tsx": "",
            "c.js": "",
            "d.jsx": "",
            "e.css": "",
            "f.d.ts": "",
            "node_modules/pkg/index.js": "",
            "dist/out.js": "",
            ".next/server.js": "",
            ".hidden/x.ts": "",
            "lib/nested/g.ts": "",
        })

        assert _scan(root) == ["a.ts", "b.tsx", "c.js", "d.jsx", "f.d.ts", "lib/nested/g.ts"]

    def test_deterministic_order(self, write_tree):
        root = write_tree({"z.ts": "", "a/b.ts": "", "m.ts": "", "a/a.ts": ""})
        assert _scan(root) == ["a/a.ts", "a/b.ts", "m.ts", "z.ts"]

    def test_empty_directory(self, tmp_path: Path):
        assert _scan(tmp_path) == []

    def test_missing_root(self, tmp_path: Path):
        with pytest.raises(ScanRootError):
            scan(tmp_path / "nope", config.EXCLUDE_DIRS, config.SUPPORTED_EXTENSIONS)

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_loop_terminates(self, write_tree):
        root = write_tree({"pkg/a.ts": ""})
        os.symlink(root / "pkg", root / "pkg" / "loop")

        assert _scan(root) == ["pkg/a.ts"]

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_into_root_keeps_real_path(self, write_tree):
        root = write_tree({"components/Button.ts": ""})
        # "alias" sorts before "components", so the link is met first.
        os.symlink(root / "components", root / "alias")

        assert _scan(root) == ["components/Button.ts"]

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_symlink_outside_root_is_followed(self, tmp_path: Path):
        root = tmp_path / "src"
        shared = tmp_path / "shared"
        root.mkdir()
        shared.mkdir()
        (shared / "util.ts").write_text("")
        os.symlink(shared, root / "shared")

        assert _scan(root) == ["shared/util.ts"]


class TestReadSource:
    """Bounded, newline-preserving reads."""

    def test_reads_text(self, tmp_path: Path):
        path = tmp_path / "a.ts"
        path.write_bytes(b"const a = 1\r\n")
        assert read_source(path, 1024) == "const a = 1\r\n"

    def test_too_large(self, tmp_path: Path):
        path = tmp_path / "big.ts"
        path.write_text("x" * 20)

        with pytest.raises(FileAccessError) as exc_info:
            read_source(path, 10)
        assert exc_info.value.path == str(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileAccessError):
            read_source(tmp_path / "missing.ts", 1024)

    def test_invalid_utf8_replaced(self, tmp_path: Path):
        path = tmp_path / "bad.ts"
        path.write_bytes(b"import x from './x'\n\xff\xfe\n")
        assert read_source(path, 1024).startswith("import x from './x'\n")


def test_normalize_path(tmp_path: Path):
    assert normalize_path(tmp_path / "a" / ".." / "b.ts") == (tmp_path / "b.ts").as_posix()
    assert normalize_path(str(tmp_path) + "/./c.ts") == (tmp_path / "c.ts").as_posix()
