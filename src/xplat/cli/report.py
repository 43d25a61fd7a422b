"""xplat report command - shared-code metrics, diagnostics and suggestions in one document."""

from pathlib import Path

import click

from xplat.cli.analyze import analyze_index, open_index
from xplat.core.progress import status
from xplat.files import LocalFileSystem
from xplat.refactor import RuleEngine
from xplat.report import AnalysisReport, render_json, render_markdown


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
    "--format",
    "fmt",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    show_default=True,
    help="Report format",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report here instead of stdout",
)
@click.option(
    "--top",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Diagnostics and suggestions listed in a Markdown report",
)
def report_command(
    path: Path,
    db_path: Path | None,
    repo_key: str | None,
    fmt: str,
    output: Path | None,
    top: int,
) -> None:
    """Write an analysis report for the indexed repository at PATH."""
    repo_root = path.resolve()
    config, store = open_index(repo_root, db_path)
    try:
        diagnostic_report = analyze_index(
            store, config, repo_root, repo_key, quiet=output is None
        )
        files = LocalFileSystem(repo_root)
        suggestions = RuleEngine(
            files, context_lines=config.diff.context_lines
        ).generate_from_diagnostics(diagnostic_report.diagnostics)
        report = AnalysisReport.build(
            store, diagnostic_report, suggestions, repo_name=repo_root.name
        )
    finally:
        store.close()

    text = render_json(report) if fmt == "json" else render_markdown(report, top=top)
    if output is None:
        click.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    status(f"Report written to {output}", style="success")
