"""Resolve declared sources to directories on the local filesystem."""

from contextlib import ExitStack
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from dusk_skills.exceptions import SourceNotFoundError
from dusk_skills.fetcher.download import downloaded_source
from dusk_skills.fetcher.types import ResolvedSource

if TYPE_CHECKING:
    from dusk_skills.manifest import Source


class SourceResolver:
    """Resolves each source at most once and owns any temporary downloads.

    Use as a context manager; downloaded sources are removed on exit.
    """

    def __init__(self, base_dir: Path, client: httpx.Client | None = None):
        self.base_dir = base_dir
        self.client = client
        self._stack = ExitStack()
        self._resolved: dict[str, ResolvedSource] = {}

    def __enter__(self) -> "SourceResolver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Remove temporary downloads."""
        self._resolved.clear()
        self._stack.close()

    def resolve(self, source: "Source") -> ResolvedSource:
        """Return the local root of ``source``, downloading it if remote.

        Raises:
            SourceNotFoundError: If a local path doesn't exist, or a subclass
                of it if a remote source cannot be fetched
        """
        cached = self._resolved.get(source.name)
        if cached is not None:
            return cached

        if source.is_local:
            root = (self.base_dir / source.path).resolve()
            if not root.exists():
                raise SourceNotFoundError(
                    f"Local source '{source.name}' not found: {root}"
                )
            resolved = ResolvedSource(name=source.name, root=root)
        else:
            remote = source.remote
            root = self._stack.enter_context(
                downloaded_source(remote, source.rev, self.client)
            )
            resolved = ResolvedSource(name=source.name, root=root, remote=remote)

        self._resolved[source.name] = resolved
        return resolved

    def resolve_all(self, sources: list["Source"]) -> dict[str, ResolvedSource]:
        """Resolve every source, failing on the first one that can't be resolved."""
        return {source.name: self.resolve(source) for source in sources}
