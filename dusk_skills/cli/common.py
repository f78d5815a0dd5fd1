"""Shared CLI utilities for dusk-skills commands."""

from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner

from dusk_skills.constants import MANIFEST_FILENAME
from dusk_skills.exceptions import DuskError
from dusk_skills.manifest import Manifest, find_manifest

console = Console()


def parse_overrides(values: list[str] | None) -> dict[str, str]:
    """Parse repeated ``TOKEN=VALUE`` options into a dict.

    Examples:
        >>> parse_overrides(["##PLAYWRIGHT-CLI##=/usr/bin/playwright-cli"])
        {'##PLAYWRIGHT-CLI##': '/usr/bin/playwright-cli'}
    """
    overrides: dict[str, str] = {}
    for item in values or []:
        token, sep, value = item.partition("=")
        if not sep or not token:
            raise typer.BadParameter(
                f"Invalid substitution '{item}'. Expected: TOKEN=VALUE"
            )
        overrides[token] = value
    return overrides


def load_manifest(manifest_path: Path | None) -> Manifest:
    """Load an explicit manifest, or find skills.toml from the current directory.

    Prints the error and exits with status 1 if it can't be loaded.
    """
    if manifest_path is None:
        manifest_path = find_manifest()
        if manifest_path is None:
            console.print(f"[red]Error:[/red] {MANIFEST_FILENAME} not found")
            console.print("[dim]Run 'dusk-skills init' to create one[/dim]")
            raise typer.Exit(1)

    try:
        return Manifest.load(manifest_path)
    except DuskError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@contextmanager
def build_spinner(text: str = "Building..."):
    """Show spinner during a build."""
    with Live(Spinner("dots", text=text), console=console, transient=True):
        yield
