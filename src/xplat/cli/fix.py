"""xplat fix command - turn fixable diagnostics into suggestions and apply them."""

import json
from pathlib import Path

import click
from rich.table import Table

from xplat.cli.analyze import run_analysis
from xplat.core.progress import get_console, pluralize, status
from xplat.diagnostics import DiagnosticStream
from xplat.files import LocalFileSystem
from xplat.refactor import RefactorOps, RuleEngine, UndoManager
from xplat.refactor.models import ApplyResult, RefactorSuggestion


def _suggestions_table(suggestions: list[RefactorSuggestion]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("ID", overflow="fold")
    table.add_column("Priority")
    table.add_column("Title", overflow="fold")
    table.add_column("Files", justify="right")
    table.add_column("Auto", justify="center")
    for s in suggestions:
        table.add_row(
            s.id,
            s.priority.value,
            s.title,
            str(len(s.changes)),
            "✓" if s.is_auto_applicable else "",
        )
    return table


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
@click.option("--apply", "apply_fixes", is_flag=True, help="Write auto-applicable fixes")
@click.option("--force", is_flag=True, help="With --apply, also write fixes that need review")
@click.option("--show-diff", is_flag=True, help="Print the diff of every suggestion")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def fix_command(
    path: Path,
    db_path: Path | None,
    repo_key: str | None,
    apply_fixes: bool,
    force: bool,
    show_diff: bool,
    as_json: bool,
) -> None:
    """List fix suggestions for PATH, optionally applying them.

    Exits with status 1 when --apply was given and some fix failed to apply.
    """
    repo_root = path.resolve()
    config, report = run_analysis(repo_root, db_path, repo_key, quiet=as_json)

    files = LocalFileSystem(repo_root)
    stream = DiagnosticStream(config.stream.buffer_capacity)
    ops = RefactorOps(files, undo=UndoManager(config.undo.max_history), stream=stream)
    ops.add_all(
        RuleEngine(files, context_lines=config.diff.context_lines).generate_from_diagnostics(
            report.diagnostics
        )
    )
    suggestions = ops.pending()

    results: list[ApplyResult] = []
    resolved = 0
    if apply_fixes:
        with stream.subscribe() as sub:
            for suggestion in suggestions:
                if suggestion.is_auto_applicable or force:
                    results.append(ops.apply_refactoring(suggestion.id, force=force))
            resolved = sum(1 for e in sub.drain() if e.event.kind == "resolved")
    failed = [r for r in results if not r.success]

    if as_json:
        payload = {
            "suggestions": [s.to_dict() for s in suggestions],
            "results": [
                {
                    "suggestion_id": r.suggestion_id,
                    "success": r.success,
                    "reason": r.reason,
                    "files_written": r.files_written,
                }
                for r in results
            ],
            "resolved_diagnostics": resolved,
        }
        click.echo(json.dumps(payload, indent=2))
    elif not suggestions:
        status("No fixable diagnostics", style="success")
    else:
        get_console().print(_suggestions_table(suggestions))
        if show_diff:
            for suggestion in suggestions:
                click.echo(suggestion.unified_diff, nl=False)
        if apply_fixes:
            for result in failed:
                status(f"{result.suggestion_id}: {result.reason}", style="error")
            applied = len(results) - len(failed)
            status(
                f"Applied {pluralize(applied, 'fix', 'fixes')}, "
                f"resolved {pluralize(resolved, 'diagnostic')}",
                style="warning" if failed else "success",
            )
        else:
            status(f"{pluralize(len(suggestions), 'suggestion')}; rerun with --apply to write them")

    if failed:
        click.get_current_context().exit(1)
