"""dusk-skills lock command implementation."""

from rich.console import Console
from rich.markup import escape

from dusk_skills.exceptions import DuskError
from dusk_skills.fetcher import pin_revisions, resolve_revision
from dusk_skills.fetcher.types import RemoteKind
from dusk_skills.manifest import Manifest

console = Console()


def run_lock(manifest: Manifest, update: bool = False) -> dict[str, str]:
    """Run the lock command.

    Pins every unpinned github: source to the commit its ref points to now.
    With ``update``, sources that already have a ``rev`` are re-resolved too.
    Plain tarball URLs can't be pinned and are left alone.
    """
    revisions: dict[str, str] = {}
    try:
        for source in manifest.sources.values():
            remote = source.remote
            if remote is None or remote.kind is not RemoteKind.GITHUB:
                continue
            if source.rev and not update:
                console.print(f"[dim]Pinned:[/dim] {escape(source.name)} @ {escape(source.rev)}")
                continue
            revisions[source.name] = resolve_revision(remote)
            console.print(
                f"[green]Locked:[/green] {escape(source.name)} @ {revisions[source.name]}"
            )

        if revisions:
            pin_revisions(manifest.path, revisions)
    except DuskError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    if not revisions:
        console.print("[dim]Nothing to lock.[/dim]")
    return revisions
