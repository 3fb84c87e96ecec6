"""Import/export extraction for JavaScript and TypeScript sources.

Extraction is regex based and deliberately shallow: it recognises a fixed
set of statement forms and reports ``(specifier, line, kind)`` facts. The
:class:`Extractor` interface keeps the rest of the pipeline independent of
how those facts are produced, so a real parser can replace
:class:`RegexExtractor` without touching the graph or cycle layers.

Recognised forms::

    import Default, { a, b as c } from './x'
    import * as ns from '@/lib/y'
    import './side-effect'
    const z = require('z')
    await import('./lazy')
    export function|const|class|interface|type|enum Name
    export { a, b as c }
    export { a } from './x'
    export * from './x'
"""

from __future__ import annotations

import bisect
import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from . import config
from .errors import ExtractionError
from .models import ExportKind, ExportRef, ImportKind, ImportRef
from .resolver import classify

logger = logging.getLogger(__name__)

_QUOTED = r"""(?P<q>['"])(?P<spec>[^'"\n]+)(?P=q)"""

STATIC_IMPORT_RE = re.compile(
    r"\bimport\s+(?:type\s+)?"
    r"(?P<bindings>(?:[\w$]+\s*,\s*)?(?:\{[^}]*\}|\*\s*as\s+[\w$]+|[\w$]+)\s+from\s*)?"
    + _QUOTED
)
DYNAMIC_IMPORT_RE = re.compile(r"\bimport\s*\(\s*" + _QUOTED + r"\s*\)")
REQUIRE_RE = re.compile(
    r"(?:\b(?:const|let|var)\s+(?P<bindings>[\w$]+|\{[^}]*\})\s*=\s*)?"
    r"\brequire\s*\(\s*" + _QUOTED + r"\s*\)"
)

EXPORT_DECL_RE = re.compile(
    r"\bexport\s+(?:declare\s+)?(?:async\s+)?(?:abstract\s+)?"
    r"(?:function\s*\*?|const|let|var|class|interface|type|enum)\s+(?P<name>[\w$]+)"
)
EXPORT_DEFAULT_RE = re.compile(r"\bexport\s+default\b")
EXPORT_LIST_RE = re.compile(
    r"\bexport\s+(?:type\s+)?\{(?P<names>[^}]*)\}(?:\s*from\s*" + _QUOTED + r")?"
)
EXPORT_STAR_RE = re.compile(
    r"\bexport\s+(?:type\s+)?\*(?:\s*as\s+(?P<alias>[\w$]+))?\s*from\s*" + _QUOTED
)

_IDENT_RE = re.compile(r"^[\w$]+$")


class Extractor(ABC):
    """Abstract base class for import/export extractors."""

    @abstractmethod
    def extract(self, content: str) -> Tuple[List[ImportRef], List[ExportRef]]:
        """Return the imports and exports found in *content*."""
        ...

    def extract_file(self, file_path: str, content: str) -> Tuple[List[ImportRef], List[ExportRef]]:
        """Extract from one file, binding each reference to *file_path*.

        Failures are logged and yield empty results so that one
        pathological file never aborts a batch.
        """
        try:
            imports, exports = self.extract(content)
        except Exception as exc:
            logger.warning("Extraction failed for %s: %s", file_path, exc)
            return [], []
        for ref in imports:
            ref.file_path = file_path
        for ref in exports:
            ref.file_path = file_path
        return imports, exports


class RegexExtractor(Extractor):
    """Regex-based extractor for ES modules and CommonJS ``require``."""

    def __init__(self, alias_prefixes: Iterable[str] = (config.DEFAULT_ALIAS_PREFIX,)) -> None:
        self.alias_prefixes = tuple(alias_prefixes)

    def extract(self, content: str) -> Tuple[List[ImportRef], List[ExportRef]]:
        try:
            lines = _LineIndex(content)
            imports = self._imports(content, lines)
            exports = self._exports(content, lines)
        except (re.error, RecursionError, MemoryError) as exc:
            raise ExtractionError(str(exc)) from exc
        return imports, exports

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _imports(self, content: str, lines: "_LineIndex") -> List[ImportRef]:
        found: List[Tuple[int, ImportRef]] = []
        for pattern, kind in (
            (STATIC_IMPORT_RE, ImportKind.STATIC),
            (DYNAMIC_IMPORT_RE, ImportKind.DYNAMIC),
            (REQUIRE_RE, ImportKind.REQUIRE),
        ):
            for m in pattern.finditer(content):
                offset = m.start("spec")
                specifier = m.group("spec").strip()
                bindings = m.groupdict().get("bindings")
                found.append((offset, ImportRef(
                    specifier=specifier,
                    line=lines.line_of(offset),
                    kind=kind,
                    category=classify(specifier, self.alias_prefixes),
                    bindings=parse_bindings(bindings) if bindings else [],
                )))
        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _exports(self, content: str, lines: "_LineIndex") -> List[ExportRef]:
        found: List[Tuple[int, ExportRef]] = []

        for m in EXPORT_DECL_RE.finditer(content):
            offset = m.start("name")
            found.append((offset, ExportRef(m.group("name"), ExportKind.NAMED, lines.line_of(offset))))

        for m in EXPORT_DEFAULT_RE.finditer(content):
            found.append((m.start(), ExportRef("default", ExportKind.NAMED, lines.line_of(m.start()))))

        for m in EXPORT_LIST_RE.finditer(content):
            source = m.group("spec")
            kind = ExportKind.REEXPORT if source else ExportKind.NAMED
            line = lines.line_of(m.start("spec") if source else m.start())
            for name in _exported_names(m.group("names")):
                found.append((m.start(), ExportRef(name, kind, line, source=source)))

        for m in EXPORT_STAR_RE.finditer(content):
            line = lines.line_of(m.start("spec"))
            alias = m.group("alias")
            if alias:
                ref = ExportRef(alias, ExportKind.REEXPORT, line, source=m.group("spec"))
            else:
                ref = ExportRef("*", ExportKind.NAMESPACE_ALL, line, source=m.group("spec"))
            found.append((m.start(), ref))

        found.sort(key=lambda item: item[0])
        return [ref for _, ref in found]


def parse_bindings(text: str) -> List[str]:
    """Local names bound by an import clause or a require destructuring.

    >>> parse_bindings("React, { useState as useS, type FC } from ")
    ['React', 'useS', 'FC']
    """
    text = re.sub(r"\s+from\s*$", "", text.strip())
    names: List[str] = []
    brace = re.search(r"\{([^}]*)\}", text)
    head = text[:brace.start()] if brace else text
    for part in head.split(","):
        part = part.strip()
        if not part:
            continue
        ns = re.match(r"^\*\s*as\s+([\w$]+)$", part)
        if ns:
            names.append(ns.group(1))
        elif _IDENT_RE.match(part):
            names.append(part)
    if brace:
        for part in brace.group(1).split(","):
            part = re.sub(r"^type\s+", "", part.strip())
            if not part:
                continue
            # `a as b` in imports, `a: b` in require destructuring
            local = re.split(r"\s+as\s+|\s*:\s*", part)[-1].strip()
            local = local.split("=")[0].strip()
            if _IDENT_RE.match(local):
                names.append(local)
    return names


def _exported_names(text: str) -> List[str]:
    names = []
    for part in text.split(","):
        part = re.sub(r"^type\s+", "", part.strip())
        if not part:
            continue
        exported = re.split(r"\s+as\s+", part)[-1].strip()
        if _IDENT_RE.match(exported):
            names.append(exported)
    return names


class _LineIndex:
    """Maps character offsets to 1-based line numbers."""

    def __init__(self, content: str) -> None:
        self._starts = [0] + [m.end() for m in re.finditer(r"\n", content)]

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset)


_default_extractor: Optional[RegexExtractor] = None


def extract(content: str) -> Tuple[List[ImportRef], List[ExportRef]]:
    """Extract with a shared :class:`RegexExtractor` using default aliases.

    Never raises: extraction failures are logged and give empty results.
    """
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = RegexExtractor()
    try:
        return _default_extractor.extract(content)
    except ExtractionError as exc:
        logger.warning("Extraction failed: %s", exc)
        return [], []
