"""Report emitter: statistics, JSON artifacts and rich console summaries.

Every command persists one JSON document shaped ``{timestamp, summary,
details}``. Reports are written to a temporary file and moved into place,
so an interrupted run never leaves a partial artifact behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections import Counter, defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .errors import ReportWriteError
from .graph import most_dependencies, most_referenced, to_dict
from .models import (
    AnalysisResult,
    DependencyGraph,
    ImportCategory,
    ImportKind,
    SourceFile,
    TransformationReport,
    UnusedImport,
    display_path,
)
from .resolver import relative_depth

STATUS_CLEAN = "clean"
STATUS_ISSUES = "issues_found"


def percentage(part: int, total: int) -> float:
    """``part / total`` as a percentage rounded to 0.1; 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(part / total * 100, 1)


# ----------------------------------------------------------------------
# Statistics
# ----------------------------------------------------------------------

def category_counts(files: Iterable[SourceFile]) -> Counter:
    counts: Counter = Counter({c.value: 0 for c in ImportCategory})
    for source in files:
        for ref in source.imports:
            counts[ref.category.value] += 1
    return counts


def summarize_imports(files: List[SourceFile]) -> Dict[str, Any]:
    counts = category_counts(files)
    total = sum(counts.values())
    kinds: Counter = Counter({k.value: 0 for k in ImportKind})
    for source in files:
        for ref in source.imports:
            kinds[ref.kind.value] += 1
    return {
        "total_files": len(files),
        "total_imports": total,
        "total_exports": sum(len(f.exports) for f in files),
        "relative_imports": counts["relative"],
        "aliased_imports": counts["aliased"],
        "external_imports": counts["external"],
        "relative_percentage": percentage(counts["relative"], total),
        "aliased_percentage": percentage(counts["aliased"], total),
        "external_percentage": percentage(counts["external"], total),
        "by_kind": dict(kinds),
    }


def file_stats(source: SourceFile, root: Optional[str] = None) -> Dict[str, Any]:
    counts = category_counts([source])
    return {
        "file": display_path(source.path, root),
        "total_imports": len(source.imports),
        "relative_imports": counts["relative"],
        "aliased_imports": counts["aliased"],
        "external_imports": counts["external"],
        "exports": len(source.exports),
    }


def directory_stats(files: List[SourceFile], root: Optional[str] = None, n: int = 15) -> List[Dict[str, Any]]:
    """Per-directory import totals, busiest directories first."""
    stats: Dict[str, Counter] = defaultdict(Counter)
    for source in files:
        directory = display_path(os.path.dirname(source.path), root)
        if root and directory == Path(root).as_posix():
            directory = "."
        counts = category_counts([source])
        entry = stats[directory]
        entry["files"] += 1
        entry["imports"] += len(source.imports)
        entry["relative"] += counts["relative"]
        entry["aliased"] += counts["aliased"]

    ranked = sorted(stats.items(), key=lambda item: (-item[1]["imports"], item[0]))[:n]
    return [
        {
            "directory": directory,
            "files": entry["files"],
            "imports": entry["imports"],
            "relative_percentage": percentage(entry["relative"], entry["imports"]),
            "aliased_percentage": percentage(entry["aliased"], entry["imports"]),
        }
        for directory, entry in ranked
    ]


def top_files(files: List[SourceFile], n: int, root: Optional[str] = None) -> List[Dict[str, Any]]:
    ranked = sorted(files, key=lambda f: (-len(f.imports), f.path))[:n]
    return [{"file": display_path(f.path, root), "imports": len(f.imports)} for f in ranked if f.imports]


def top_packages(graph: DependencyGraph, n: int) -> List[Dict[str, Any]]:
    return [{"package": name, "imports": count} for name, count in graph.external_usage.most_common(n)]


def problematic_patterns(
    files: List[SourceFile],
    deep_threshold: int = 3,
    root: Optional[str] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Deep relative specifiers and files that mix relative and alias imports."""
    deep: List[Dict[str, Any]] = []
    mixed: List[Dict[str, Any]] = []
    for source in files:
        for ref in source.imports:
            if ref.category is ImportCategory.RELATIVE:
                depth = relative_depth(ref.specifier)
                if depth >= deep_threshold:
                    deep.append({
                        "file": display_path(source.path, root),
                        "import": ref.specifier,
                        "line": ref.line,
                        "depth": depth,
                    })
        counts = category_counts([source])
        if counts["relative"] and counts["aliased"]:
            mixed.append({
                "file": display_path(source.path, root),
                "relative_imports": counts["relative"],
                "aliased_imports": counts["aliased"],
            })
    return {"deep_relative_paths": deep, "inconsistent_patterns": mixed}


# ----------------------------------------------------------------------
# Report documents
# ----------------------------------------------------------------------

def build_report(summary: Dict[str, Any], details: List[Any]) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": summary,
        "details": details,
    }


def analysis_report(result: AnalysisResult, top_n: int = 10, deep_threshold: int = 3) -> Dict[str, Any]:
    root = result.root
    summary = summarize_imports(result.files)
    summary.update({
        "root": root,
        "skipped_files": [display_path(p, root) for p in result.skipped],
        "total_modules": len(result.graph.nodes),
        "total_dependencies": result.graph.edge_count,
        "unresolved_imports": len(result.graph.unresolved),
        "cycle_count": len(result.cycles),
        "top_files": top_files(result.files, top_n, root),
        "top_directories": directory_stats(result.files, root, top_n),
        "top_packages": top_packages(result.graph, top_n),
        "problematic_patterns": problematic_patterns(result.files, deep_threshold, root),
    })
    details = []
    for source in result.files:
        entry = file_stats(source, root)
        entry["imports"] = [
            {
                "specifier": ref.specifier,
                "line": ref.line,
                "kind": ref.kind.value,
                "category": ref.category.value,
                "resolved": display_path(ref.resolved_path, root) if ref.resolved_path else None,
            }
            for ref in source.imports
        ]
        details.append(entry)
    return build_report(summary, details)


def cycles_report(result: AnalysisResult, top_n: int = 5) -> Dict[str, Any]:
    root = result.root
    summary = {
        "root": root,
        "status": STATUS_ISSUES if result.cycles else STATUS_CLEAN,
        "total_modules": len(result.graph.nodes),
        "total_dependencies": result.graph.edge_count,
        "cycle_count": len(result.cycles),
        "most_dependencies": [
            {"module": display_path(node, root), "dependencies": count}
            for node, count in most_dependencies(result.graph, top_n)
        ],
        "most_referenced": [
            {"module": display_path(node, root), "references": count}
            for node, count in most_referenced(result.graph, top_n)
        ],
        "dependency_graph": {
            display_path(node, root): [display_path(t, root) for t in targets]
            for node, targets in to_dict(result.graph).items()
        },
    }
    details = [
        {
            "cycle": [display_path(n, root) for n in cycle.nodes],
            "length": cycle.length,
            "description": cycle.describe(root),
        }
        for cycle in result.cycles
    ]
    return build_report(summary, details)


def validation_report(result: AnalysisResult) -> Dict[str, Any]:
    root = result.root
    invalid = len(result.graph.unresolved)
    total = result.graph.reference_count
    valid = total - invalid
    has_issues = bool(invalid or result.cycles)
    summary = {
        "root": root,
        "status": STATUS_ISSUES if has_issues else STATUS_CLEAN,
        "total_files": len(result.files),
        "total_references": total,
        "valid_imports": valid,
        "invalid_imports": invalid,
        "success_rate": percentage(valid, total),
        "cycle_count": len(result.cycles),
        "cycles": [[display_path(n, root) for n in cycle.nodes] for cycle in result.cycles],
    }
    details = [
        {
            "file": display_path(item.file_path, root),
            "import": item.specifier,
            "line": item.line,
            "error": item.reason,
        }
        for item in result.graph.unresolved
    ]
    return build_report(summary, details)


def transform_report(report: TransformationReport, dry_run: bool, root: Optional[str] = None) -> Dict[str, Any]:
    summary = {
        "root": root,
        "dry_run": dry_run,
        "success": report.success,
        "backup_id": report.backup_id,
        "total_files": report.total_files,
        "transformed_files": report.transformed_files,
        "transformed_imports": report.transformed_imports,
        "transformation_rate": round(report.transformation_rate, 1),
        "warnings": sum(len(r.warnings) for r in report.results),
        "errors": [
            {"file": display_path(e.file_path, root), "error": e.error} for e in report.errors
        ],
    }
    details = [
        {
            "file": display_path(result.file_path, root),
            "written": result.written,
            "transformed_imports": [
                {"original": t.original, "transformed": t.transformed, "line": t.line, "rule": t.rule}
                for t in result.transformed_imports
            ],
            "warnings": result.warnings,
        }
        for result in report.results
        if result.has_changes
    ]
    return build_report(summary, details)


def unused_report(files: List[SourceFile], unused: List[UnusedImport], root: Optional[str] = None) -> Dict[str, Any]:
    summary = {
        "root": root,
        "status": STATUS_ISSUES if unused else STATUS_CLEAN,
        "checked_files": len(files),
        "unused_imports": len(unused),
        "files_with_unused": len({u.file_path for u in unused}),
    }
    details = [
        {"file": display_path(u.file_path, root), "line": u.line, "name": u.name, "import": u.specifier}
        for u in unused
    ]
    return build_report(summary, details)


def write_report(report: Dict[str, Any], path: Path) -> Path:
    """Atomically write *report* as JSON to *path*."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise ReportWriteError(f"Cannot write report {path}: {exc}") from exc
    return path


# ----------------------------------------------------------------------
# Console rendering
# ----------------------------------------------------------------------

def _section(title: str, rows: List[tuple], columns: List[str]) -> Table:
    table = Table(title=title, show_header=True, title_justify="left")
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else None)
    for row in rows:
        table.add_row(*[escape(str(cell)) for cell in row])
    return table


def render_analysis(console: Console, report: Dict[str, Any]) -> None:
    s = report["summary"]
    console.print(Panel.fit(
        f"Files: [bold]{s['total_files']}[/bold]   Imports: [bold]{s['total_imports']}[/bold]\n"
        f"Relative: {s['relative_imports']} ({s['relative_percentage']:.1f}%)   "
        f"Aliased: {s['aliased_imports']} ({s['aliased_percentage']:.1f}%)   "
        f"External: {s['external_imports']} ({s['external_percentage']:.1f}%)\n"
        f"Modules: {s['total_modules']}   Dependencies: {s['total_dependencies']}   "
        f"Unresolved: {s['unresolved_imports']}   Cycles: {s['cycle_count']}",
        title="[bold]📊 Import Analysis[/bold]",
        border_style="cyan",
    ))

    if s["top_files"]:
        console.print(_section(
            "Files with the most imports",
            [(f["file"], f["imports"]) for f in s["top_files"]],
            ["File", "Imports"],
        ))
    if s["top_directories"]:
        console.print(_section(
            "Directories",
            [
                (d["directory"], d["files"], d["imports"],
                 f"{d['relative_percentage']:.1f}%", f"{d['aliased_percentage']:.1f}%")
                for d in s["top_directories"]
            ],
            ["Directory", "Files", "Imports", "Relative", "Aliased"],
        ))
    if s["top_packages"]:
        console.print(_section(
            "External packages",
            [(p["package"], p["imports"]) for p in s["top_packages"]],
            ["Package", "Imports"],
        ))

    patterns = s["problematic_patterns"]
    deep = patterns["deep_relative_paths"]
    if deep:
        console.print(f"\n[yellow]⚠️  {len(deep)} deep relative import(s)[/yellow]")
        for item in deep[:10]:
            console.print(f"  • {escape(item['file'])}:{item['line']} {escape(item['import'])} (depth {item['depth']})")
        if len(deep) > 10:
            console.print(f"  ... and {len(deep) - 10} more")
    mixed = patterns["inconsistent_patterns"]
    if mixed:
        console.print(f"\n[yellow]⚠️  {len(mixed)} file(s) mix relative and alias imports[/yellow]")
        for item in mixed[:10]:
            console.print(
                f"  • {escape(item['file'])} (relative: {item['relative_imports']}, aliased: {item['aliased_imports']})"
            )
    if s["skipped_files"]:
        console.print(f"\n[yellow]Skipped {len(s['skipped_files'])} unreadable file(s)[/yellow]")


def render_cycles(console: Console, report: Dict[str, Any]) -> None:
    s = report["summary"]
    console.print(f"Modules: {s['total_modules']}   Dependencies: {s['total_dependencies']}")
    if s["most_dependencies"]:
        console.print(_section(
            "Modules with the most dependencies",
            [(m["module"], m["dependencies"]) for m in s["most_dependencies"]],
            ["Module", "Dependencies"],
        ))
    if s["most_referenced"]:
        console.print(_section(
            "Most referenced modules",
            [(m["module"], m["references"]) for m in s["most_referenced"]],
            ["Module", "References"],
        ))

    if report["details"]:
        console.print(f"\n[red]⚠️  {len(report['details'])} circular dependenc"
                      f"{'y' if len(report['details']) == 1 else 'ies'} found[/red]")
        for index, cycle in enumerate(report["details"], start=1):
            console.print(f"  {index}. {escape(cycle['description'])}")
    else:
        console.print("\n[green]✓ No circular dependencies found.[/green]")


def render_validation(console: Console, report: Dict[str, Any]) -> None:
    s = report["summary"]
    console.print(
        f"Files: {s['total_files']}   Valid imports: {s['valid_imports']}   "
        f"Invalid imports: {s['invalid_imports']}   Success rate: {s['success_rate']:.1f}%   "
        f"Cycles: {s['cycle_count']}"
    )
    details = report["details"]
    if details:
        console.print(_section(
            "Unresolved imports",
            [(f"{d['file']}:{d['line']}", d["import"], d["error"]) for d in details[:20]],
            ["Location", "Import", "Reason"],
        ))
        if len(details) > 20:
            console.print(f"  ... and {len(details) - 20} more")
    for index, cycle in enumerate(s["cycles"], start=1):
        console.print(f"  [red]{index}. {escape(' → '.join(cycle))}[/red]")
    if s["status"] == STATUS_CLEAN:
        console.print("\n[green]✓ All imports resolve and there are no circular dependencies.[/green]")


def render_transform(console: Console, report: Dict[str, Any]) -> None:
    s = report["summary"]
    mode = "DRY RUN" if s["dry_run"] else "APPLIED"
    console.print(Panel.fit(
        f"Files: {s['total_files']}   Changed files: {s['transformed_files']}   "
        f"Rewritten imports: {s['transformed_imports']}   Rate: {s['transformation_rate']:.1f}%",
        title=f"[bold]🔄 Import Rewrite ({mode})[/bold]",
        border_style="cyan",
    ))
    for entry in report["details"][:10]:
        console.print(f"  [cyan]{escape(entry['file'])}[/cyan] ({len(entry['transformed_imports'])} change(s))")
        for change in entry["transformed_imports"][:3]:
            console.print(f"     L{change['line']}: {escape(change['original'])} → {escape(change['transformed'])}")
        if len(entry["transformed_imports"]) > 3:
            console.print(f"     ... and {len(entry['transformed_imports']) - 3} more")
    if len(report["details"]) > 10:
        console.print(f"  ... and {len(report['details']) - 10} more file(s)")
    if s["warnings"]:
        console.print(f"\n[yellow]⚠️  {s['warnings']} rewritten import(s) do not resolve[/yellow]")
    for error in s["errors"]:
        console.print(f"[red]✗ {escape(error['file'])}: {escape(error['error'])}[/red]")
    if s["success"] and not s["transformed_files"]:
        console.print("\n[green]✓ No imports needed rewriting.[/green]")
    if s.get("backup_id"):
        backup_id = escape(s["backup_id"])
        console.print(f"\n💾 Backup {backup_id} taken first. Undo with: dg backup restore {backup_id}")


def render_unused(console: Console, report: Dict[str, Any]) -> None:
    s = report["summary"]
    console.print(f"Checked files: {s['checked_files']}   Unused imports: {s['unused_imports']}")
    if report["details"]:
        console.print(_section(
            "Unused imports",
            [(f"{d['file']}:{d['line']}", d["name"], d["import"]) for d in report["details"][:50]],
            ["Location", "Name", "Import"],
        ))
    else:
        console.print("[green]✓ No unused imports found.[/green]")
