"""Import specifier rewriting (relative paths -> alias paths).

Rules are applied line by line, in the order they are declared. Each
changed specifier is recorded and, when a resolver is available,
re-validated after the rewrite. Validation failures are reported as
warnings; the rewrite itself is kept.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from . import config
from .errors import FileAccessError
from .models import (
    RewriteRule,
    TransformationError,
    TransformationReport,
    TransformationResult,
    TransformedImport,
)
from .resolver import PathResolver, is_relative
from .scanner import read_source

logger = logging.getLogger(__name__)

_QUOTED = r"""(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)"""
_QUOTED_RE = re.compile(r"""['"]([^'"\n]+)['"]""")

# Lead-in text of each statement form whose specifier may be rewritten.
STATEMENT_LEADS = {
    "from": r"\bfrom\s*",
    "side-effect": r"\bimport\s+",
    "require": r"\brequire\s*\(\s*",
    "dynamic": r"\bimport\s*\(\s*",
}


def relative_to_alias(
    specifier: str,
    file_path: str,
    src_root: str,
    alias_prefix: str = config.DEFAULT_ALIAS_PREFIX,
    skip_same_directory: bool = True,
) -> Optional[str]:
    """Alias form of a relative *specifier*, or ``None`` to leave it alone.

    Same-directory (``./``) specifiers are kept when *skip_same_directory*
    is set; non-relative specifiers and targets outside *src_root* are
    never rewritten.
    """
    if not is_relative(specifier):
        return None
    if skip_same_directory and (specifier == "." or specifier.startswith("./")):
        return None

    target = os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(file_path)), specifier))
    try:
        rel = os.path.relpath(target, os.path.abspath(src_root))
    except ValueError:
        return None
    if rel == "." or rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
        return None
    return alias_prefix + Path(rel).as_posix()


def relative_to_alias_rules(
    src_root: str,
    alias_prefix: str = config.DEFAULT_ALIAS_PREFIX,
    skip_same_directory: bool = True,
) -> List[RewriteRule]:
    """Computed rules rewriting relative specifiers under *src_root* to aliases."""

    def replace(match: "re.Match[str]", file_path: str) -> Optional[str]:
        new = relative_to_alias(
            match.group("spec"), file_path, src_root, alias_prefix, skip_same_directory,
        )
        if new is None:
            return None
        quote = match.group("q")
        return f"{match.group('lead')}{quote}{new}{quote}"

    return [
        RewriteRule(
            name=f"relative-to-alias:{form}",
            pattern=re.compile(f"(?P<lead>{lead})" + _QUOTED),
            replacement=replace,
            description=f"Rewrite relative {form} specifiers to {alias_prefix} paths",
        )
        for form, lead in STATEMENT_LEADS.items()
    ]


def deep_relative_rules(
    alias_prefix: str = config.DEFAULT_ALIAS_PREFIX,
    directories: Sequence[str] = config.KNOWN_SOURCE_DIRS,
    depths: Sequence[int] = (3, 2, 1),
) -> List[RewriteRule]:
    """Static rules: ``'../' * depth + <known dir>`` becomes ``alias_prefix + <dir>``.

    These rules do not look at the importing file's location; they assume
    the known directories sit directly under the alias root. Rules are
    ordered deepest first.
    """
    dirs = "|".join(re.escape(d) for d in directories)
    prefix = alias_prefix.replace("\\", "\\\\")
    rules = []
    for form in ("from", "require", "dynamic"):
        for depth in sorted(depths, reverse=True):
            pattern = re.compile(
                f"(?P<lead>{STATEMENT_LEADS[form]})(?P<q>['\"])(?:\\.\\./){{{depth}}}"
                f"(?P<dir>{dirs})(?P<rest>(?:/[^'\"\\n]*)?)(?P=q)"
            )
            rules.append(RewriteRule(
                name=f"deep-relative:{form}:{depth}",
                pattern=pattern,
                replacement=f"\\g<lead>\\g<q>{prefix}\\g<dir>\\g<rest>\\g<q>",
                description=f"Rewrite {depth}-level relative {form} specifiers to {alias_prefix} paths",
            ))
    return rules


class ImportRewriter:
    """Apply :class:`RewriteRule` lists to files.

    With ``dry_run`` set, results are computed exactly as in apply mode but
    nothing is written.
    """

    def __init__(
        self,
        rules: Sequence[RewriteRule],
        resolver: Optional[PathResolver] = None,
        dry_run: bool = False,
        max_file_bytes: int = config.MAX_FILE_BYTES,
    ) -> None:
        self.rules = list(rules)
        self.resolver = resolver
        self.dry_run = dry_run
        self.max_file_bytes = max_file_bytes

    def rewrite(self, content: str, file_path: str) -> TransformationResult:
        """Rewrite *content* in memory; no validation, no I/O."""
        changes: List[TransformedImport] = []
        lines = content.split("\n")

        for index, line in enumerate(lines):
            for rule in self.rules:
                line = rule.pattern.sub(
                    lambda m, rule=rule: self._replace(m, rule, file_path, index + 1, changes),
                    line,
                )
            lines[index] = line

        return TransformationResult(
            file_path=file_path,
            original_content=content,
            transformed_content="\n".join(lines),
            transformed_imports=changes,
        )

    def _replace(
        self,
        match: "re.Match[str]",
        rule: RewriteRule,
        file_path: str,
        line: int,
        changes: List[TransformedImport],
    ) -> str:
        original = match.group(0)
        if callable(rule.replacement):
            new = rule.replacement(match, file_path)
        else:
            new = match.expand(rule.replacement)
        if new is None or new == original:
            return original
        changes.append(TransformedImport(
            original=_specifier(original),
            transformed=_specifier(new),
            line=line,
            rule=rule.name,
        ))
        return new

    def validate(self, result: TransformationResult) -> List[str]:
        """Resolve every rewritten specifier; return warnings for failures."""
        warnings = []
        if self.resolver is None:
            return warnings
        for change in result.transformed_imports:
            resolution = self.resolver.resolve(change.transformed, result.file_path)
            if not resolution.is_resolved:
                message = (
                    f"{result.file_path}:{change.line} rewritten specifier "
                    f"'{change.transformed}' does not resolve ({resolution.reason})"
                )
                logger.warning("%s", message)
                warnings.append(message)
        return warnings

    def transform_file(self, path: Path) -> TransformationResult:
        """Rewrite one file on disk, writing it back unless in dry-run mode."""
        content = read_source(path, self.max_file_bytes, errors="surrogateescape")
        result = self.rewrite(content, str(path))
        result.warnings = self.validate(result)

        if result.has_changes and not self.dry_run:
            try:
                with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                    f.write(result.transformed_content)
            except OSError as exc:
                raise FileAccessError(str(path), exc.strerror or str(exc)) from exc
            result.written = True
            logger.info("Rewrote %s (%d imports)", path, len(result.transformed_imports))
        elif result.has_changes:
            logger.info("Would rewrite %s (%d imports)", path, len(result.transformed_imports))
        return result

    def transform_files(self, paths: Iterable[Path]) -> TransformationReport:
        paths = list(paths)
        report = TransformationReport(total_files=len(paths))
        for path in paths:
            try:
                report.results.append(self.transform_file(path))
            except FileAccessError as exc:
                logger.error("Failed to transform %s: %s", path, exc.reason)
                report.errors.append(TransformationError(file_path=str(path), error=exc.reason))
        return report


def rewrite(content: str, file_path: str, rules: Sequence[RewriteRule]) -> TransformationResult:
    """Convenience wrapper: rewrite *content* with *rules* (no I/O)."""
    return ImportRewriter(rules).rewrite(content, file_path)


def _specifier(statement: str) -> str:
    m = _QUOTED_RE.search(statement)
    return m.group(1) if m else statement
