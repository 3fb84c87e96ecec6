"""Tests for specifier classification and path resolution."""

from pathlib import Path

import pytest

from depgraph_cli.models import ImportCategory
from depgraph_cli.resolver import PathResolver, classify, package_name, relative_depth
from depgraph_cli.scanner import normalize_path


@pytest.mark.parametrize(
    "specifier,category",
    [
        ("./a", ImportCategory.RELATIVE),
        ("../a/b", ImportCategory.RELATIVE),
        ("@/lib/x", ImportCategory.ALIASED),
        ("@scope/pkg", ImportCategory.EXTERNAL),
        ("react", ImportCategory.EXTERNAL),
        (".hidden", ImportCategory.EXTERNAL),
        (".", ImportCategory.RELATIVE),
        ("..", ImportCategory.RELATIVE),
    ],
)
def test_classify(specifier, category):
    assert classify(specifier) is category


def test_package_name():
    assert package_name("@scope/pkg/sub/path") == "@scope/pkg"
    assert package_name("lodash/fp") == "lodash"
    assert package_name("react") == "react"


def test_relative_depth():
    assert relative_depth("../../../components/Foo") == 3
    assert relative_depth("./x") == 0


class TestPathResolver:
    """Resolution order: as written, then extensions, then index files."""

    def _resolver(self, root: Path) -> PathResolver:
        return PathResolver({"@/": str(root / "src")})

    def test_direct_file_wins_over_index(self, write_tree):
        root = write_tree({
            "src/foo.ts": "",
            "src/foo/index.ts": "",
            "src/main.ts": "",
        })
        resolution = self._resolver(root).resolve("./foo", str(root / "src/main.ts"))

        assert resolution.is_resolved
        assert resolution.resolved_path == normalize_path(root / "src/foo.ts")

    def test_index_file(self, write_tree):
        root = write_tree({"src/widgets/index.tsx": "", "src/main.ts": ""})
        resolution = self._resolver(root).resolve("./widgets", str(root / "src/main.ts"))
        assert resolution.resolved_path == normalize_path(root / "src/widgets/index.tsx")

    def test_path_as_written(self, write_tree):
        root = write_tree({"src/data.js": "", "src/main.ts": ""})
        resolution = self._resolver(root).resolve("./data.js", str(root / "src/main.ts"))
        assert resolution.resolved_path == normalize_path(root / "src/data.js")

    def test_extension_order(self, write_tree):
        root = write_tree({"src/x.js": "", "src/x.ts": "", "src/main.ts": ""})
        resolution = self._resolver(root).resolve("./x", str(root / "src/main.ts"))
        assert resolution.resolved_path.endswith("/src/x.ts")

    def test_alias(self, write_tree):
        root = write_tree({"src/lib/util.ts": "", "src/app/page.ts": ""})
        resolution = self._resolver(root).resolve("@/lib/util", str(root / "src/app/page.ts"))

        assert resolution.category is ImportCategory.ALIASED
        assert resolution.resolved_path == normalize_path(root / "src/lib/util.ts")

    def test_longest_alias_prefix_wins(self, write_tree):
        root = write_tree({"src/ui/button.ts": "", "design/button.ts": ""})
        resolver = PathResolver({"@/": str(root / "src"), "@/ui/": str(root / "design")})
        resolution = resolver.resolve("@/ui/button", str(root / "src/main.ts"))
        assert resolution.resolved_path == normalize_path(root / "design/button.ts")

    def test_unresolved_has_reason(self, write_tree):
        root = write_tree({"src/main.ts": ""})
        resolution = self._resolver(root).resolve("./nope", str(root / "src/main.ts"))

        assert not resolution.is_resolved
        assert resolution.resolved_path is None
        assert "no file matches" in resolution.reason

    def test_external_assumed_valid(self, tmp_path: Path):
        resolution = self._resolver(tmp_path).resolve("react", str(tmp_path / "src/main.ts"))

        assert resolution.category is ImportCategory.EXTERNAL
        assert resolution.is_resolved
        assert resolution.resolved_path is None

    def test_directory_is_not_a_match(self, write_tree):
        root = write_tree({"src/empty/readme.md": "", "src/main.ts": ""})
        resolution = self._resolver(root).resolve("./empty", str(root / "src/main.ts"))
        assert not resolution.is_resolved

    def test_bare_parent_directory(self, write_tree):
        root = write_tree({"src/index.ts": "", "src/app/page.ts": ""})
        resolution = self._resolver(root).resolve("..", str(root / "src/app/page.ts"))

        assert resolution.category is ImportCategory.RELATIVE
        assert resolution.resolved_path == normalize_path(root / "src/index.ts")
