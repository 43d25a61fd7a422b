"""xplat analyze command - run the analyzers over an indexed repository."""

import json
from pathlib import Path

import click
from rich.table import Table

from xplat.analysis import DiagnosticEngine, DiagnosticReport, default_analyzers
from xplat.config import XplatConfig, load_config, resolve_db_path
from xplat.core.errors import ConfigError
from xplat.core.progress import get_console, pluralize, spinner, status
from xplat.diagnostics import (
    Diagnostic,
    DiagnosticCategory,
    DiagnosticFilter,
    DiagnosticTag,
    Severity,
    filter_diagnostics,
)
from xplat.files import LocalFileSystem
from xplat.index import IndexStore

_SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
    Severity.HINT: "dim",
}


def _diagnostics_table(diagnostics: list[Diagnostic]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Severity")
    table.add_column("Location", overflow="fold")
    table.add_column("Category")
    table.add_column("Message", overflow="fold")
    table.add_column("Fix", justify="center")
    for d in diagnostics:
        style = _SEVERITY_STYLES[d.severity]
        table.add_row(
            f"[{style}]{d.severity.value}[/{style}]",
            f"{d.file_path}:{d.line}",
            d.category.value,
            d.message,
            "✓" if d.is_fixable else "",
        )
    return table


def open_index(repo_root: Path, db_path: Path | None) -> tuple[XplatConfig, IndexStore]:
    """Load config for repo_root and open its index database.

    Raises:
        click.ClickException: On invalid config or a missing index database.
    """
    try:
        config = load_config(repo_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    db = db_path or resolve_db_path(repo_root, config)
    if not db.exists():
        raise click.ClickException(
            f"No index database at {db}. Build the index first or pass --db."
        )
    return config, IndexStore.open(db)


def analyze_index(
    store: IndexStore,
    config: XplatConfig,
    repo_root: Path,
    repo_key: str | None,
    *,
    quiet: bool = False,
) -> DiagnosticReport:
    """Run every built-in analyzer against an open store."""
    analyzers = default_analyzers(store, LocalFileSystem(repo_root), config.analysis)
    engine = DiagnosticEngine(analyzers, store=store, max_workers=config.analysis.max_parallel)
    if quiet:
        return engine.run(repo_key or str(repo_root))
    with spinner("Analyzing"):
        return engine.run(repo_key or str(repo_root))


def run_analysis(
    repo_root: Path, db_path: Path | None, repo_key: str | None, *, quiet: bool = False
) -> tuple[XplatConfig, DiagnosticReport]:
    """Open the index, analyze it and close it again.

    Raises:
        click.ClickException: On invalid config or a missing index database.
    """
    config, store = open_index(repo_root, db_path)
    try:
        report = analyze_index(store, config, repo_root, repo_key, quiet=quiet)
    finally:
        store.close()
    return config, report


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Index database (default: .xplat/index.db under PATH)",
)
@click.option(
    "--repo-key",
    default=None,
    help="Repository path the index was built under (default: PATH resolved)",
)
@click.option(
    "--severity",
    "severities",
    multiple=True,
    type=click.Choice([s.value for s in Severity], case_sensitive=False),
    help="Only show these severities (repeatable)",
)
@click.option(
    "--category",
    "categories",
    multiple=True,
    type=click.Choice([c.value for c in DiagnosticCategory]),
    help="Only show these categories (repeatable)",
)
@click.option("--fixable", is_flag=True, help="Only show diagnostics with a fix")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analyze_command(
    path: Path,
    db_path: Path | None,
    repo_key: str | None,
    severities: tuple[str, ...],
    categories: tuple[str, ...],
    fixable: bool,
    as_json: bool,
) -> None:
    """Analyze an indexed repository and list its diagnostics.

    PATH is the repository root (default: current directory).
    """
    _, report = run_analysis(path.resolve(), db_path, repo_key, quiet=as_json)

    criteria = DiagnosticFilter(
        severities=frozenset(Severity(s.upper()) for s in severities),
        categories=frozenset(DiagnosticCategory(c) for c in categories),
        required_tags=frozenset({DiagnosticTag.FIXABLE}) if fixable else frozenset(),
    )
    shown = filter_diagnostics(report.diagnostics, criteria)

    if as_json:
        payload = report.to_dict()
        payload["diagnostics"] = [d.to_dict() for d in shown]
        click.echo(json.dumps(payload, indent=2))
        return

    failed = [r for r in report.analyzer_results if not r.success]
    for result in failed:
        status(f"Analyzer {result.analyzer} failed: {result.error}", style="warning")

    if not shown:
        scanned = pluralize(report.files_scanned, "file")
        status(f"No diagnostics ({scanned} scanned)", style="success")
        return

    get_console().print(_diagnostics_table(shown))
    errors = sum(1 for d in shown if d.severity is Severity.ERROR)
    summary = (
        f"{pluralize(len(shown), 'diagnostic')}, {pluralize(errors, 'error')}, "
        f"{report.fixable_count} fixable, {pluralize(report.files_scanned, 'file')} scanned"
    )
    status(summary, style="error" if errors else "warning")
