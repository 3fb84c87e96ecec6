"""Pipeline orchestration: scan, extract, resolve, build graph, detect cycles."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import List, Optional, Tuple

from . import config
from .backup import BackupManager
from .config_manager import Settings
from .cycles import detect_cycles
from .errors import ConfigError, FileAccessError
from .graph import build_graph
from .models import AnalysisResult, RewriteRule, SourceFile, TransformationReport, UnusedImport
from .parser import Extractor, RegexExtractor
from .resolver import PathResolver
from .rewriter import ImportRewriter, deep_relative_rules, relative_to_alias_rules
from .scanner import normalize_path, read_source, scan
from .unused import find_unused_imports

logger = logging.getLogger(__name__)

RULE_SETS = ("computed", "deep")


class AnalysisOrchestrator:
    """Runs the analysis and rewrite pipelines for one set of settings."""

    def __init__(self, settings: Optional[Settings] = None, extractor: Optional[Extractor] = None):
        self.settings = settings or Settings()
        self.resolver = PathResolver(self.settings.alias_roots(), self.settings.resolve_extensions)
        self.extractor = extractor or RegexExtractor(self.resolver.alias_prefixes)

    def _root(self, root: Optional[Path]) -> Path:
        return Path(root) if root is not None else Path(self.settings.src_root)

    def scan(self, root: Optional[Path] = None) -> List[Path]:
        return scan(self._root(root), self.settings.exclude_dirs, self.settings.extensions)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_one(self, path: Path) -> SourceFile:
        content = read_source(path, self.settings.max_file_bytes)
        file_id = normalize_path(path)
        imports, exports = self.extractor.extract_file(file_id, content)
        return SourceFile(path=file_id, content=content, imports=imports, exports=exports)

    def load_sources(self, root: Optional[Path] = None) -> Tuple[List[SourceFile], List[str]]:
        """Read and extract every source file under *root* in parallel.

        Returns the loaded files in scan order plus the paths that were
        skipped (unreadable, too large or timed out).
        """
        paths = self.scan(root)
        if not paths:
            return [], []

        workers = max(1, min(self.settings.max_workers, len(paths)))
        loaded: List[Optional[SourceFile]] = [None] * len(paths)
        skipped: List[str] = []

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="depgraph-read")
        try:
            futures = [executor.submit(self._load_one, path) for path in paths]
            for index, future in enumerate(futures):
                path = paths[index]
                try:
                    loaded[index] = future.result(timeout=self.settings.read_timeout)
                except FutureTimeout:
                    logger.warning("Timed out reading %s after %.1fs", path, self.settings.read_timeout)
                    skipped.append(str(path))
                except FileAccessError as exc:
                    logger.warning("Skipping %s: %s", path, exc.reason)
                    skipped.append(str(path))
        finally:
            # A read that timed out must not hold up the rest of the run.
            executor.shutdown(wait=False, cancel_futures=True)

        files = [f for f in loaded if f is not None]
        logger.info("Loaded %d source files (%d skipped)", len(files), len(skipped))
        return files, skipped

    # ------------------------------------------------------------------
    # Pipelines
    # ------------------------------------------------------------------

    def analyze(self, root: Optional[Path] = None) -> AnalysisResult:
        """Full analysis: sources, dependency graph and cycles."""
        root_path = self._root(root)
        files, skipped = self.load_sources(root_path)
        graph = build_graph(files, self.resolver)
        cycles = detect_cycles(graph)
        return AnalysisResult(
            root=normalize_path(root_path),
            files=files,
            graph=graph,
            cycles=cycles,
            skipped=skipped,
        )

    def rules(self, rule_set: str = "computed") -> List[RewriteRule]:
        prefix = self.settings.alias_prefix
        alias_roots = self.settings.alias_roots()
        if prefix not in alias_roots:
            # Rewritten specifiers would classify as external and never be checked.
            raise ConfigError(
                f"Alias prefix '{prefix}' is not among the configured aliases "
                f"({', '.join(alias_roots) or 'none'})"
            )
        if rule_set == "computed":
            return relative_to_alias_rules(alias_roots[prefix], prefix, self.settings.skip_same_directory)
        if rule_set == "deep":
            return deep_relative_rules(prefix, config.KNOWN_SOURCE_DIRS)
        raise ConfigError(f"Unknown rule set '{rule_set}'. Choose one of: {', '.join(RULE_SETS)}")

    def transform(
        self,
        root: Optional[Path] = None,
        dry_run: bool = False,
        rule_set: str = "computed",
        backup: bool = False,
    ) -> TransformationReport:
        """Rewrite import specifiers of every file under *root*.

        With *backup* set, apply mode snapshots the project first.
        """
        rewriter = ImportRewriter(
            self.rules(rule_set),
            resolver=self.resolver,
            dry_run=dry_run,
            max_file_bytes=self.settings.max_file_bytes,
        )
        paths = self.scan(root)
        backup_id = None
        if backup and not dry_run:
            backup_id = BackupManager(self.settings).create("Before import rewrite").backup_id
        outcome = rewriter.transform_files(paths)
        outcome.backup_id = backup_id
        return outcome

    def find_unused(self, root: Optional[Path] = None) -> Tuple[List[SourceFile], List[UnusedImport]]:
        files, _ = self.load_sources(root)
        unused: List[UnusedImport] = []
        for source in files:
            unused.extend(find_unused_imports(source))
        return files, unused
