"""Detect imported bindings that are never referenced in their file."""

from __future__ import annotations

import re
from typing import List

from .models import ImportKind, SourceFile, UnusedImport

_OPENER_RE = re.compile(r"\s*(?:export\s+)?(?:import|const|let|var)\b")


def find_unused_imports(source: SourceFile) -> List[UnusedImport]:
    """Return bindings of *source* that do not appear outside their import.

    The check is textual: a name counts as used if it occurs as a whole
    word anywhere else in the file, including comments and strings.
    """
    lines = source.content.split("\n")
    unused: List[UnusedImport] = []

    for ref in source.imports:
        if not ref.bindings or ref.kind is ImportKind.DYNAMIC:
            continue
        own_lines = _statement_lines(lines, ref.line)
        rest = "\n".join(line for i, line in enumerate(lines, start=1) if i not in own_lines)
        for name in ref.bindings:
            if not re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", rest):
                unused.append(UnusedImport(
                    file_path=ref.file_path or source.path,
                    specifier=ref.specifier,
                    name=name,
                    line=ref.line,
                ))
    return unused


def _statement_lines(lines: List[str], specifier_line: int, max_span: int = 50) -> set:
    """Line numbers spanned by an import statement ending on *specifier_line*.

    Walks upwards from the specifier line to the line that opens the
    statement (`import`, `const`, `let` or `var`).
    """
    own = set()
    line_no = specifier_line
    while line_no >= 1 and specifier_line - line_no <= max_span:
        own.add(line_no)
        if _OPENER_RE.match(lines[line_no - 1]):
            break
        line_no -= 1
    return own
