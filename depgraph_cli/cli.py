"""Typer-based CLI for depgraph import analysis and rewriting."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__, config, report
from .backup import BackupManager
from .config_manager import Settings, describe, load_settings, save_config
from .errors import DepgraphError
from .graph_export import export_dot, export_html
from .orchestrator import RULE_SETS, AnalysisOrchestrator

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="🔗 depgraph: import dependency analysis for JavaScript/TypeScript projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="⚙️  Show or create depgraph configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

backup_app = typer.Typer(help="💾 Snapshot and restore the source tree.", no_args_is_help=True)
app.add_typer(backup_app, name="backup")

EXIT_FINDINGS = 1
EXIT_FAILURE = 2


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"depgraph v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    log = logging.getLogger("depgraph_cli")
    log.handlers.clear()
    log.addHandler(RichHandler(console=err_console, show_path=False, show_time=False))
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    log.propagate = False


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """depgraph: scan a source tree, map its imports and find circular dependencies."""
    setup_logging(verbose)


def _settings(src: Optional[Path] = None) -> Settings:
    settings = load_settings(Path.cwd())
    if src is not None:
        settings = settings.with_overrides(src_dir=str(src))
    return settings


def _fail(exc: DepgraphError) -> typer.Exit:
    err_console.print(f"[red]❌ {escape(str(exc))}[/red]")
    return typer.Exit(code=EXIT_FAILURE)


def _report_path(path: Optional[Path], default_name: str) -> Path:
    return path if path is not None else Path.cwd() / default_name


@app.command("analyze")
def analyze(
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to analyze."),
    report_file: Optional[Path] = typer.Option(None, "--report", "-r", help="JSON report path."),
    top: Optional[int] = typer.Option(None, "--top", min=1, help="Entries to show in top-N tables."),
):
    """Analyze import patterns, dependencies and cycles of a source tree."""
    try:
        settings = _settings(src).with_overrides(top_n=top)
        result = AnalysisOrchestrator(settings).analyze()
        payload = report.analysis_report(result, settings.top_n, settings.deep_relative_threshold)
        path = report.write_report(payload, _report_path(report_file, config.ANALYSIS_REPORT))
    except DepgraphError as exc:
        raise _fail(exc)

    report.render_analysis(console, payload)
    console.print(f"\n📄 Report written to {escape(str(path))}")


@app.command("check-cycles")
def check_cycles(
    directory: Optional[Path] = typer.Option(None, "--dir", "-d", help="Directory to check."),
    report_file: Optional[Path] = typer.Option(None, "--report", "-r", help="JSON report path."),
):
    """Detect circular dependencies. Exits with 1 when any are found."""
    try:
        settings = _settings(directory)
        result = AnalysisOrchestrator(settings).analyze()
        payload = report.cycles_report(result)
        path = report.write_report(payload, _report_path(report_file, config.CYCLES_REPORT))
    except DepgraphError as exc:
        raise _fail(exc)

    report.render_cycles(console, payload)
    console.print(f"\n📄 Report written to {escape(str(path))}")
    if result.has_cycles:
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command("transform")
def transform(
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to rewrite."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute changes without writing files."),
    rules: str = typer.Option("computed", "--rules", help="Rule set: computed or deep."),
    backup: bool = typer.Option(False, "--backup", help="Snapshot the project before writing."),
    report_file: Optional[Path] = typer.Option(None, "--report", "-r", help="JSON report path."),
):
    """Rewrite relative imports to alias imports."""
    if rules not in RULE_SETS:
        raise typer.BadParameter(f"Rule set must be one of: {', '.join(RULE_SETS)}")

    try:
        settings = _settings(src)
        outcome = AnalysisOrchestrator(settings).transform(dry_run=dry_run, rule_set=rules, backup=backup)
        payload = report.transform_report(outcome, dry_run, settings.src_root)
        path = report.write_report(payload, _report_path(report_file, config.TRANSFORM_REPORT))
    except DepgraphError as exc:
        raise _fail(exc)

    report.render_transform(console, payload)
    console.print(f"\n📄 Report written to {escape(str(path))}")
    if not outcome.success:
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command("validate")
def validate(
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to validate."),
    report_file: Optional[Path] = typer.Option(None, "--report", "-r", help="JSON report path."),
):
    """Check that every import resolves and that there are no cycles."""
    try:
        result = AnalysisOrchestrator(_settings(src)).analyze()
        payload = report.validation_report(result)
        path = report.write_report(payload, _report_path(report_file, config.VALIDATION_REPORT))
    except DepgraphError as exc:
        raise _fail(exc)

    report.render_validation(console, payload)
    console.print(f"\n📄 Report written to {escape(str(path))}")
    if payload["summary"]["status"] != report.STATUS_CLEAN:
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command("unused-imports")
def unused_imports(
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to check."),
    report_file: Optional[Path] = typer.Option(None, "--report", "-r", help="JSON report path."),
):
    """List imported names that are never referenced in their file."""
    try:
        settings = _settings(src)
        files, unused = AnalysisOrchestrator(settings).find_unused()
        payload = report.unused_report(files, unused, settings.src_root)
        path = report.write_report(payload, _report_path(report_file, config.UNUSED_REPORT))
    except DepgraphError as exc:
        raise _fail(exc)

    report.render_unused(console, payload)
    console.print(f"\n📄 Report written to {escape(str(path))}")


@app.command("export-graph")
def export_graph(
    focus: str = typer.Argument("", help="Optional path fragment to export a local subgraph."),
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to analyze."),
    fmt: str = typer.Option("html", "--format", "-f", help="Export format: html or dot."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path."),
):
    """Export the module dependency graph to standalone HTML or Graphviz DOT."""
    fmt = fmt.lower()
    if fmt not in {"html", "dot"}:
        raise typer.BadParameter("Format must be one of: html, dot")

    try:
        result = AnalysisOrchestrator(_settings(src)).analyze()
    except DepgraphError as exc:
        raise _fail(exc)

    if output is None:
        output = Path.cwd() / f"dependency_graph.{fmt}"
    try:
        if fmt == "html":
            export_html(result, output, focus=focus)
        else:
            export_dot(result, output, focus=focus)
    except OSError as exc:
        err_console.print(f"[red]❌ Cannot write {escape(str(output))}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=EXIT_FAILURE)

    typer.echo(f"Exported graph to {output}")


@config_app.command("show")
def config_show():
    """Print the effective settings."""
    try:
        settings = load_settings(Path.cwd())
    except DepgraphError as exc:
        raise _fail(exc)

    table = Table(title="depgraph settings", show_header=True, title_justify="left")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in describe(settings):
        table.add_row(key, value)
    console.print(table)


@config_app.command("init")
def config_init(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Config file to create."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
    user: bool = typer.Option(False, "--user", help="Write the per-user config instead."),
):
    """Write a default depgraph.toml."""
    if user:
        config.ensure_base_dirs()
        target = config.USER_CONFIG_FILE
    else:
        target = path if path is not None else Path.cwd() / config.PROJECT_CONFIG_NAME
    if target.exists() and not force:
        err_console.print(f"[yellow]{escape(str(target))} already exists. Use --force to overwrite.[/yellow]")
        raise typer.Exit(code=EXIT_FINDINGS)

    try:
        save_config(Settings(), target)
    except (DepgraphError, OSError) as exc:
        err_console.print(f"[red]❌ Cannot write {escape(str(target))}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=EXIT_FAILURE)
    console.print(f"[green]✓ Wrote {escape(str(target))}[/green]")


@backup_app.command("create")
def backup_create(
    description: str = typer.Argument("Manual backup", help="Note stored with the backup."),
    src: Optional[Path] = typer.Option(None, "--src", "-s", help="Source directory to back up."),
):
    """Copy the source tree and project config files into .backup/."""
    try:
        metadata = BackupManager(_settings(src)).create(description)
    except DepgraphError as exc:
        raise _fail(exc)
    console.print(f"[green]✓ Created {metadata.backup_id}[/green] ({len(metadata.files)} files)")


@backup_app.command("list")
def backup_list():
    """List available backups, newest first."""
    try:
        backups = BackupManager(_settings()).list_backups()
    except DepgraphError as exc:
        raise _fail(exc)
    if not backups:
        console.print("📦 No backups found.")
        return

    table = Table(title="📦 Backups", show_header=True, title_justify="left")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Commit")
    table.add_column("Description")
    for backup in backups:
        table.add_row(
            backup.backup_id,
            backup.timestamp[:19].replace("T", " "),
            str(len(backup.files)),
            (backup.git_commit or "")[:8],
            escape(backup.description),
        )
    console.print(table)


@backup_app.command("restore")
def backup_restore(
    backup_id: Optional[str] = typer.Argument(None, help="Backup to restore (default: newest)."),
    dry_run: bool = typer.Option(False, "--dry-run", help="List files without restoring them."),
):
    """Restore files from a backup. Exits with 1 when any file fails."""
    try:
        result = BackupManager(_settings()).restore(backup_id, dry_run=dry_run)
    except DepgraphError as exc:
        raise _fail(exc)

    verb = "Would restore" if dry_run else "Restored"
    console.print(f"{verb} {len(result.restored)} file(s) from {result.backup_id}")
    for rel in result.failed:
        err_console.print(f"[red]✗ {escape(rel)}[/red]")
    if not result.success:
        raise typer.Exit(code=EXIT_FINDINGS)


@backup_app.command("delete")
def backup_delete(backup_id: str = typer.Argument(..., help="Backup to delete.")):
    """Delete one backup."""
    try:
        BackupManager(_settings()).delete(backup_id)
    except DepgraphError as exc:
        raise _fail(exc)
    console.print(f"[green]✓ Deleted {escape(backup_id)}[/green]")


if __name__ == "__main__":
    app()
