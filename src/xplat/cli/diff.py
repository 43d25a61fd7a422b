"""xplat diff command - unified diff of two files."""

from pathlib import Path

import click

from xplat.config import load_config
from xplat.core.errors import XplatError
from xplat.diff import generate_diff, split_lines
from xplat.files import LocalFileSystem


@click.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-U",
    "--context",
    "context",
    type=click.IntRange(min=0),
    default=None,
    help="Lines of context (default from config, 3)",
)
def diff_command(old: Path, new: Path, context: int | None) -> None:
    """Print the unified diff turning OLD into NEW.

    Exits with status 1 when the files differ, like diff(1).
    """
    files = LocalFileSystem()
    try:
        if context is None:
            context = load_config(Path.cwd()).diff.context_lines
        original = files.read_file(str(old))
        modified = files.read_file(str(new))
    except XplatError as e:
        raise click.ClickException(e.message) from e

    text = generate_diff(str(old), str(new), split_lines(original), split_lines(modified), context)
    if text:
        click.echo(text, nl=False)
        click.get_current_context().exit(1)
