"""Type definitions for the fetcher module."""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dusk_skills.exceptions import ManifestValidationError

GITHUB_SCHEME = "github:"

_GITHUB_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class RemoteKind(Enum):
    """Kind of remote source reference."""

    GITHUB = "github"
    TARBALL = "tarball"


@dataclass(frozen=True)
class RemoteRef:
    """Parsed remote source location.

    Attributes:
        kind: GITHUB for ``github:owner/repo[/ref]``, TARBALL for plain URLs
        url: The reference exactly as written in the manifest
        owner: GitHub owner, None for tarball URLs
        repo: GitHub repository name, None for tarball URLs
        ref: Branch, tag or commit from the reference, if any
    """

    kind: RemoteKind
    url: str
    owner: str | None = None
    repo: str | None = None
    ref: str | None = None

    @property
    def label(self) -> str:
        """Short human-readable name for messages."""
        if self.kind is RemoteKind.GITHUB:
            return f"{self.owner}/{self.repo}"
        return self.url

    def tarball_url(self, rev: str | None = None) -> str:
        """Return the archive URL to download, pinned to ``rev`` when given.

        Examples:
            >>> parse_source_url("github:blader/humanizer").tarball_url()
            'https://github.com/blader/humanizer/archive/HEAD.tar.gz'
            >>> parse_source_url("github:openai/skills/main").tarball_url("abc123")
            'https://github.com/openai/skills/archive/abc123.tar.gz'
        """
        if self.kind is RemoteKind.TARBALL:
            return self.url
        target = rev or self.ref or "HEAD"
        return f"https://github.com/{self.owner}/{self.repo}/archive/{target}.tar.gz"


@dataclass(frozen=True)
class ResolvedSource:
    """A source whose files are available on the local filesystem."""

    name: str
    root: Path
    remote: RemoteRef | None = None

    @property
    def is_remote(self) -> bool:
        return self.remote is not None


def parse_source_url(url: str) -> RemoteRef:
    """Parse a remote source reference.

    Supports:
    - "github:owner/repo" -> default branch
    - "github:owner/repo/ref" -> branch, tag or commit
    - "https://host/path/archive.tar.gz" -> plain tarball

    Raises:
        ManifestValidationError: If the reference has an unsupported form
    """
    if url.startswith(GITHUB_SCHEME):
        parts = url[len(GITHUB_SCHEME):].split("/", 2)
        if len(parts) < 2 or not all(parts):
            raise ManifestValidationError(
                f"Invalid GitHub reference '{url}'. Expected: github:<owner>/<repo>[/<ref>]"
            )
        owner, repo = parts[0], parts[1]
        if not _GITHUB_NAME.match(owner) or not _GITHUB_NAME.match(repo):
            raise ManifestValidationError(
                f"Invalid GitHub reference '{url}': bad owner or repository name"
            )
        ref = parts[2] if len(parts) == 3 else None
        return RemoteRef(kind=RemoteKind.GITHUB, url=url, owner=owner, repo=repo, ref=ref)

    if url.startswith("https://") or url.startswith("http://"):
        return RemoteRef(kind=RemoteKind.TARBALL, url=url)

    raise ManifestValidationError(
        f"Unsupported source URL '{url}'. Use github:<owner>/<repo> or an https:// tarball"
    )
