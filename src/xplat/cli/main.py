"""xplat CLI - xplat command."""

import click

from xplat import __version__
from xplat.cli.analyze import analyze_command
from xplat.cli.detect import detect_command
from xplat.cli.diff import diff_command
from xplat.cli.fix import fix_command
from xplat.cli.report import report_command
from xplat.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="xplat")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """xplat - cross-platform repository diagnostics and fixes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(analyze_command, name="analyze")
cli.add_command(detect_command, name="detect")
cli.add_command(diff_command, name="diff")
cli.add_command(fix_command, name="fix")
cli.add_command(report_command, name="report")


if __name__ == "__main__":
    cli()
