"""Dependency graph construction from extracted source files."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Iterator, List, Tuple

from .models import (
    DependencyGraph,
    ExportKind,
    ImportCategory,
    ImportKind,
    ImportRef,
    SourceFile,
    UnresolvedImport,
)
from .resolver import PathResolver, package_name
from .scanner import normalize_path

logger = logging.getLogger(__name__)


def module_references(source: SourceFile, resolver: PathResolver) -> Iterator[ImportRef]:
    """Imports of *source* plus re-export sources, which are dependencies too."""
    yield from source.imports
    seen = set()
    for export in source.exports:
        if export.kind is ExportKind.NAMED or not export.source:
            continue
        # `export { a, b } from "./x"` yields one ExportRef per name.
        if (export.source, export.line) in seen:
            continue
        seen.add((export.source, export.line))
        yield ImportRef(
            specifier=export.source,
            line=export.line,
            kind=ImportKind.STATIC,
            category=resolver.classify(export.source),
            file_path=source.path,
        )


def build_graph(files: Iterable[SourceFile], resolver: PathResolver) -> DependencyGraph:
    """Build a fresh :class:`DependencyGraph` from *files*.

    Every file becomes a node. Only relative and aliased specifiers that
    resolve contribute edges; external specifiers are counted per package
    and unresolved ones are collected with their reason. Self-imports are
    kept as self-loops. Each ``ImportRef`` gets its ``resolved_path`` set.
    """
    graph = DependencyGraph()
    files = list(files)
    for source in files:
        graph.add_node(normalize_path(source.path))

    for source in files:
        src_id = normalize_path(source.path)
        for ref in module_references(source, resolver):
            graph.reference_count += 1
            if resolver.classify(ref.specifier) is ImportCategory.EXTERNAL:
                graph.external_usage[package_name(ref.specifier)] += 1
                continue

            resolution = resolver.resolve(ref.specifier, source.path)
            if not resolution.is_resolved or resolution.resolved_path is None:
                graph.unresolved.append(UnresolvedImport(
                    file_path=source.path,
                    specifier=ref.specifier,
                    line=ref.line,
                    reason=resolution.reason or "unresolved",
                ))
                continue
            ref.resolved_path = resolution.resolved_path
            graph.add_edge(src_id, normalize_path(resolution.resolved_path))

    logger.debug(
        "Built graph: %d nodes, %d edges, %d unresolved",
        len(graph.nodes), graph.edge_count, len(graph.unresolved),
    )
    return graph


def most_dependencies(graph: DependencyGraph, n: int) -> List[Tuple[str, int]]:
    """Nodes with the most outgoing edges."""
    ranked = sorted(graph.adjacency.items(), key=lambda item: len(item[1]), reverse=True)
    return [(node, len(targets)) for node, targets in ranked[:n] if targets]


def most_referenced(graph: DependencyGraph, n: int) -> List[Tuple[str, int]]:
    """Nodes with the most incoming edges."""
    counts: Counter = Counter(dst for _, dst in graph.edges())
    return counts.most_common(n)


def to_dict(graph: DependencyGraph) -> dict:
    return {node: list(targets) for node, targets in graph.adjacency.items()}
