"""CLI entry point for dusk-skills."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.table import Table

from dusk_skills import __version__
from dusk_skills.cli.common import console, load_manifest, parse_overrides
from dusk_skills.commands.build import run_build
from dusk_skills.commands.lock import run_lock
from dusk_skills.constants import DEFAULT_OUT_DIR, MANIFEST_FILENAME, OUTPUT_SUBDIRS
from dusk_skills.manifest import default_manifest
from dusk_skills.substitute import find_unresolved_tokens

app = typer.Typer(
    name="dusk-skills",
    help="Package prompt and skill documents into one output tree.",
    no_args_is_help=True,
    add_completion=False,
)

ManifestOption = Annotated[
    Optional[Path],
    typer.Option(
        "--manifest", "-m",
        help=f"Path to {MANIFEST_FILENAME} (default: search upwards from cwd).",
    ),
]

OutOption = Annotated[
    Path,
    typer.Option("--out", "-o", help="Output directory."),
]


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dusk-skills {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Package prompt and skill documents into one output tree."""


@app.command()
def build(
    manifest_path: ManifestOption = None,
    out: OutOption = Path(DEFAULT_OUT_DIR),
    substitutions: Annotated[
        Optional[list[str]],
        typer.Option(
            "--set", "-s",
            help="Override a substitution value: TOKEN=VALUE. Repeatable.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show every copy and substitution."),
    ] = False,
) -> None:
    """Build the output tree.

    Examples:
        dusk-skills build
        dusk-skills build -o result --set '##PLAYWRIGHT-CLI##=/opt/bin/playwright-cli'
    """
    overrides = parse_overrides(substitutions)
    manifest = load_manifest(manifest_path)
    run_build(manifest, out, overrides, verbose=verbose)


@app.command()
def sources(manifest_path: ManifestOption = None) -> None:
    """List the sources declared in the manifest."""
    manifest = load_manifest(manifest_path)

    if not manifest.sources:
        console.print(f"[yellow]No sources in {manifest.path.name}.[/yellow]")
        return

    table = Table(title=escape(manifest.name))
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Location")
    table.add_column("Revision", style="dim")

    for source in manifest.sources.values():
        if source.is_local:
            table.add_row(escape(source.name), "local", escape(source.path), "")
        else:
            table.add_row(
                escape(source.name),
                source.remote.kind.value,
                escape(source.url),
                escape(source.rev or ""),
            )

    console.print(table)


@app.command()
def lock(
    manifest_path: ManifestOption = None,
    update: Annotated[
        bool,
        typer.Option("--update", "-u", help="Re-resolve sources that are already pinned."),
    ] = False,
) -> None:
    """Pin github: sources to their current commit SHA in skills.toml."""
    manifest = load_manifest(manifest_path)
    run_lock(manifest, update=update)


@app.command()
def verify(
    manifest_path: ManifestOption = None,
    out: OutOption = Path(DEFAULT_OUT_DIR),
) -> None:
    """Check that a built output tree is complete and has no unresolved tokens."""
    manifest = load_manifest(manifest_path)

    if not out.is_dir():
        console.print(f"[red]Error:[/red] Output directory not found: {escape(str(out))}")
        raise typer.Exit(1)

    problems: list[str] = []
    for subdir in OUTPUT_SUBDIRS:
        if not (out / subdir).is_dir():
            problems.append(f"missing directory {subdir}/")
    for sub in manifest.substitutions:
        if not (out / sub.file).is_file():
            problems.append(f"missing substitution target {sub.file}")
    for rel_path, token in find_unresolved_tokens(out, manifest.tokens):
        problems.append(f"unresolved {token} in {rel_path}")

    if problems:
        for problem in problems:
            console.print(f"[red]Problem:[/red] {escape(problem)}")
        raise typer.Exit(1)

    console.print(f"[green]{escape(str(out))} is complete[/green]")


@app.command()
def init(
    name: Annotated[
        str,
        typer.Option("--name", help="Name of the bundle."),
    ] = "dusk-skills",
) -> None:
    """Create a starter skills.toml in the current directory."""
    path = Path.cwd() / MANIFEST_FILENAME
    if path.exists():
        console.print(f"[red]Error:[/red] {MANIFEST_FILENAME} already exists")
        raise typer.Exit(1)

    default_manifest(path, name).save()
    console.print(f"[green]Created {MANIFEST_FILENAME}[/green]")


if __name__ == "__main__":
    app()
