"""Tests for dependency graph construction."""

from pathlib import Path
from typing import Dict

from depgraph_cli.graph import build_graph, most_dependencies, most_referenced, to_dict
from depgraph_cli.models import DependencyGraph, SourceFile
from depgraph_cli.parser import RegexExtractor
from depgraph_cli.resolver import PathResolver
from depgraph_cli.scanner import normalize_path


def _load(root: Path, files: Dict[str, str]):
    extractor = RegexExtractor()
    sources = []
    for rel in files:
        path = normalize_path(root / rel)
        imports, exports = extractor.extract_file(path, files[rel])
        sources.append(SourceFile(path=path, content=files[rel], imports=imports, exports=exports))
    return sources


def _build(write_tree, files: Dict[str, str]):
    root = write_tree(files)
    resolver = PathResolver({"@/": str(root / "src")})
    return root, build_graph(_load(root, files), resolver)


class TestBuildGraph:
    """Edges come from resolved relative and aliased specifiers only."""

    def test_every_file_is_a_node(self, write_tree):
        root, graph = _build(write_tree, {"src/a.ts": "const a = 1\n", "src/b.ts": ""})

        assert set(graph.nodes) == {normalize_path(root / "src/a.ts"), normalize_path(root / "src/b.ts")}
        assert graph.edge_count == 0

    def test_edges(self, write_tree):
        root, graph = _build(write_tree, {
            "src/a.ts": "import { b } from './b'\nimport { c } from '@/c'\n",
            "src/b.ts": "",
            "src/c.ts": "",
        })
        a = normalize_path(root / "src/a.ts")

        assert graph.successors(a) == [normalize_path(root / "src/b.ts"), normalize_path(root / "src/c.ts")]

    def test_external_usage_counted(self, write_tree):
        _, graph = _build(write_tree, {
            "src/a.ts": "import React from 'react'\nimport { x } from '@scope/pkg/sub'\n",
            "src/b.ts": "import { useState } from 'react'\n",
        })

        assert graph.external_usage == {"react": 2, "@scope/pkg": 1}
        assert graph.edge_count == 0

    def test_unresolved_collected(self, write_tree):
        root, graph = _build(write_tree, {"src/a.ts": "\nimport { b } from './missing'\n"})

        assert len(graph.unresolved) == 1
        item = graph.unresolved[0]
        assert item.specifier == "./missing"
        assert item.line == 2
        assert item.file_path == normalize_path(root / "src/a.ts")

    def test_duplicate_imports_single_edge(self, write_tree):
        _, graph = _build(write_tree, {
            "src/a.ts": "import { b } from './b'\nimport type { B } from './b.ts'\n",
            "src/b.ts": "",
        })
        assert graph.edge_count == 1

    def test_reexport_creates_edge(self, write_tree):
        root, graph = _build(write_tree, {
            "src/index.ts": "export { a, b } from './a'\nexport * from './c'\n",
            "src/a.ts": "",
            "src/c.ts": "",
        })
        index = normalize_path(root / "src/index.ts")
        assert graph.successors(index) == [normalize_path(root / "src/a.ts"), normalize_path(root / "src/c.ts")]
        assert graph.reference_count == 2

    def test_bare_parent_require_is_relative(self, write_tree):
        root, graph = _build(write_tree, {
            "src/index.ts": "",
            "src/app/page.ts": "const app = require('..')\n",
        })

        assert ".." not in graph.external_usage
        assert graph.successors(normalize_path(root / "src/app/page.ts")) == [normalize_path(root / "src/index.ts")]

    def test_self_import_is_self_loop(self, write_tree):
        root, graph = _build(write_tree, {"src/a.ts": "import x from './a'\n"})
        a = normalize_path(root / "src/a.ts")
        assert graph.has_edge(a, a)

    def test_resolved_path_recorded(self, write_tree):
        root = write_tree({"src/a.ts": "import { b } from './b'\n", "src/b.ts": ""})
        sources = _load(root, {"src/a.ts": "import { b } from './b'\n", "src/b.ts": ""})
        build_graph(sources, PathResolver({"@/": str(root / "src")}))
        assert sources[0].imports[0].resolved_path == normalize_path(root / "src/b.ts")


class TestRankings:
    """Top-N helpers used by reports."""

    def test_most_dependencies_and_referenced(self):
        graph = DependencyGraph.from_edges({
            "a": ["b", "c", "d"],
            "b": ["c"],
            "c": [],
            "d": ["c"],
        })

        assert most_dependencies(graph, 2) == [("a", 3), ("b", 1)]
        assert most_referenced(graph, 1) == [("c", 3)]

    def test_to_dict(self):
        graph = DependencyGraph.from_edges({"a": ["b"], "b": []})
        assert to_dict(graph) == {"a": ["b"], "b": []}
