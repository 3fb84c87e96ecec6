"""Core data models shared by scanning, extraction, graph and rewrite layers."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union


class ImportKind(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    REQUIRE = "require"


class ImportCategory(str, Enum):
    RELATIVE = "relative"
    ALIASED = "aliased"
    EXTERNAL = "external"


class ExportKind(str, Enum):
    NAMED = "named"
    REEXPORT = "reexport"
    NAMESPACE_ALL = "namespace_all"


@dataclass
class ImportRef:
    specifier: str
    line: int
    kind: ImportKind
    category: ImportCategory = ImportCategory.EXTERNAL
    file_path: Optional[str] = None
    bindings: List[str] = field(default_factory=list)
    resolved_path: Optional[str] = None


@dataclass
class ExportRef:
    name: str
    kind: ExportKind
    line: int
    source: Optional[str] = None
    file_path: Optional[str] = None


@dataclass
class SourceFile:
    path: str
    content: str
    imports: List[ImportRef] = field(default_factory=list)
    exports: List[ExportRef] = field(default_factory=list)


@dataclass
class Resolution:
    specifier: str
    category: ImportCategory
    resolved_path: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.reason is None


@dataclass
class UnresolvedImport:
    file_path: str
    specifier: str
    line: int
    reason: str


@dataclass
class DependencyGraph:
    """Directed module graph keyed by normalized resolved paths.

    Edge sets are dicts used as insertion-ordered sets so that traversal
    order is stable across runs.
    """

    adjacency: Dict[str, Dict[str, None]] = field(default_factory=dict)
    external_usage: Counter = field(default_factory=Counter)
    unresolved: List[UnresolvedImport] = field(default_factory=list)
    # Imports plus re-export sources walked while building the graph.
    reference_count: int = 0

    def add_node(self, node: str) -> None:
        self.adjacency.setdefault(node, {})

    def add_edge(self, src: str, dst: str) -> None:
        self.add_node(src)
        self.add_node(dst)
        self.adjacency[src][dst] = None

    def successors(self, node: str) -> List[str]:
        return list(self.adjacency.get(node, {}))

    @property
    def nodes(self) -> List[str]:
        return list(self.adjacency)

    def edges(self) -> Iterator[Tuple[str, str]]:
        for src, targets in self.adjacency.items():
            for dst in targets:
                yield src, dst

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.adjacency.values())

    def has_edge(self, src: str, dst: str) -> bool:
        return dst in self.adjacency.get(src, {})

    @classmethod
    def from_edges(cls, edges: Dict[str, List[str]]) -> "DependencyGraph":
        graph = cls()
        for src, targets in edges.items():
            graph.add_node(src)
            for dst in targets:
                graph.add_edge(src, dst)
        return graph


@dataclass
class Cycle:
    nodes: List[str]

    @property
    def length(self) -> int:
        """Number of edges in the cycle."""
        return len(self.nodes) - 1

    def describe(self, root: Optional[Union[str, Path]] = None) -> str:
        return " → ".join(display_path(n, root) for n in self.nodes)


Replacement = Union[str, Callable[["re.Match[str]", str], Optional[str]]]


@dataclass
class RewriteRule:
    """A rewrite applied line by line.

    ``replacement`` is either a ``re`` template or a callable taking the
    match and the owning file path and returning the full replacement text
    (``None`` leaves the match unchanged).
    """

    name: str
    pattern: "re.Pattern[str]"
    replacement: Replacement
    description: str = ""


@dataclass
class TransformedImport:
    original: str
    transformed: str
    line: int
    rule: str = ""


@dataclass
class TransformationResult:
    file_path: str
    original_content: str
    transformed_content: str
    transformed_imports: List[TransformedImport] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    written: bool = False

    @property
    def has_changes(self) -> bool:
        return self.transformed_content != self.original_content


@dataclass
class TransformationError:
    file_path: str
    error: str


@dataclass
class TransformationReport:
    total_files: int
    results: List[TransformationResult] = field(default_factory=list)
    errors: List[TransformationError] = field(default_factory=list)
    backup_id: Optional[str] = None

    @property
    def transformed_files(self) -> int:
        return sum(1 for r in self.results if r.has_changes)

    @property
    def transformed_imports(self) -> int:
        return sum(len(r.transformed_imports) for r in self.results)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def transformation_rate(self) -> float:
        if self.total_files == 0:
            return 0.0
        return self.transformed_files / self.total_files * 100


@dataclass
class UnusedImport:
    file_path: str
    specifier: str
    name: str
    line: int


def display_path(path: str, root: Optional[Union[str, Path]] = None) -> str:
    """Render a node path relative to *root* when it lives underneath it."""
    if root is None:
        return path
    root_str = Path(root).as_posix().rstrip("/")
    if path.startswith(root_str + "/"):
        return path[len(root_str) + 1:]
    return path


@dataclass
class AnalysisResult:
    """Everything one analysis run produced for a source root."""

    root: str
    files: List[SourceFile] = field(default_factory=list)
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    cycles: List[Cycle] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


@dataclass
class BackupMetadata:
    """Snapshot description stored as ``backup-metadata.json``.

    ``files`` are paths relative to the project root.
    """

    backup_id: str
    timestamp: str
    version: str
    description: str
    files: List[str] = field(default_factory=list)
    git_commit: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "backup_id": self.backup_id,
            "timestamp": self.timestamp,
            "version": self.version,
            "description": self.description,
            "files": list(self.files),
            "git_commit": self.git_commit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "BackupMetadata":
        return cls(
            backup_id=str(data["backup_id"]),
            timestamp=str(data["timestamp"]),
            version=str(data.get("version", "")),
            description=str(data.get("description", "")),
            files=[str(f) for f in data.get("files", [])],
            git_commit=data.get("git_commit"),
        )


@dataclass
class RestoreResult:
    backup_id: str
    dry_run: bool
    restored: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed
