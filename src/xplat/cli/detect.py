"""xplat detect command - infer project type and primary language."""

import json
from pathlib import Path

import click

from xplat.analysis import detect_project_type
from xplat.config import load_config
from xplat.core.errors import ConfigError

# Build output and VCS directories that never decide a project's type
_SKIP_DIRS = frozenset({".git", ".gradle", ".idea", ".xplat", "build", "node_modules", "target"})


def _walk(root: Path) -> list[str]:
    paths: list[str] = []
    stack = [root]
    while stack:
        current = stack.pop()
        for entry in sorted(current.iterdir()):
            if entry.is_dir():
                if entry.name not in _SKIP_DIRS:
                    stack.append(entry)
            elif entry.is_file():
                paths.append(entry.relative_to(root).as_posix())
    return paths


@click.command()
@click.argument(
    "path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def detect_command(path: Path, as_json: bool) -> None:
    """Detect the build system and primary language of PATH."""
    root = path.resolve()
    try:
        config = load_config(root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    detection = detect_project_type(_walk(root), priority=config.analysis.language_priority)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "language": detection.language,
                    "project_type": detection.project_type.name
                    if detection.project_type
                    else None,
                    "build_system": detection.build_system,
                    "matched_by": detection.matched_by,
                    "build_file": detection.build_file,
                    "language_counts": detection.language_counts,
                }
            )
        )
        return

    if detection.language is None:
        click.echo("Unknown project type")
        return
    if detection.project_type is not None:
        click.echo(f"Project: {detection.project_type.name} ({detection.build_file})")
        click.echo(f"Build system: {detection.build_system}")
    click.echo(f"Language: {detection.language}")
