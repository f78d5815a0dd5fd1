"""dusk-skills build command implementation."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from dusk_skills.builder import BuildResult, build
from dusk_skills.cli.common import build_spinner
from dusk_skills.exceptions import DuskError
from dusk_skills.fetcher.types import RemoteKind
from dusk_skills.manifest import Manifest

console = Console()


def _describe_source(manifest: Manifest, name: str) -> str:
    source = manifest.sources[name]
    if source.is_local:
        return source.path or "."
    if source.rev:
        return f"{source.url} @ {source.rev}"
    return source.url or ""


def _print_details(manifest: Manifest, result: BuildResult) -> None:
    for record in result.copies:
        origin = _describe_source(manifest, record.source)
        src = f"/{record.src}" if record.src else ""
        console.print(
            f"[blue]Copied:[/blue] {escape(record.source + src)} -> {escape(record.dest or '.')} "
            f"[dim]({record.file_count} files from {escape(origin)})[/dim]"
        )
    for sub in result.substitutions:
        console.print(
            f"[blue]Substituted:[/blue] {escape(sub.token)} in {escape(sub.file)} "
            f"[dim]({sub.count}x -> {escape(sub.value)})[/dim]"
        )


def run_build(
    manifest: Manifest,
    out_dir: Path,
    overrides: dict[str, str] | None = None,
    verbose: bool = False,
) -> BuildResult:
    """Run the build command.

    Resolves every source, assembles the output tree and applies the
    manifest's substitutions. Exits with status 1 on any failure, leaving
    no new output behind.
    """
    remote = sum(1 for source in manifest.sources.values() if not source.is_local)
    console.print(
        f"[dim]Building {escape(manifest.name)}: {len(manifest.sources)} sources "
        f"({remote} remote), {len(manifest.copies)} copy steps[/dim]"
    )
    unpinned = [
        source.name for source in manifest.sources.values()
        if not source.is_local and not source.rev and source.remote.kind is RemoteKind.GITHUB
    ]
    if unpinned:
        console.print(
            f"[yellow]Warning:[/yellow] unpinned sources: {escape(', '.join(unpinned))} "
            "[dim](run 'dusk-skills lock')[/dim]"
        )

    try:
        with build_spinner(f"Building {manifest.name}..."):
            result = build(manifest, out_dir, overrides)
    except DuskError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        console.print("[dim]Build aborted; no output written[/dim]")
        raise SystemExit(1)

    if verbose:
        _print_details(manifest, result)

    console.print(
        f"[green]Built {escape(manifest.name)}[/green] -> {escape(str(result.out_dir))} "
        f"[dim]({result.total_files} files)[/dim]"
    )
    return result
