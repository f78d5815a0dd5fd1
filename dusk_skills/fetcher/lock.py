"""Pin GitHub sources in skills.toml to commit SHAs."""

import re
from pathlib import Path

import httpx
import tomlkit
from tomlkit.exceptions import ParseError

from dusk_skills.exceptions import FetchError, ManifestParseError, RepoNotFoundError
from dusk_skills.fetcher.download import DOWNLOAD_TIMEOUT
from dusk_skills.fetcher.types import RemoteKind, RemoteRef

GITHUB_API_URL = "https://api.github.com"

_COMMIT_SHA = re.compile(r"^[0-9a-f]{40}$")


def _fetch_sha(client: httpx.Client, url: str, label: str) -> str:
    response = client.get(url, headers={"Accept": "application/vnd.github.sha"})
    if response.status_code in (404, 422):
        raise RepoNotFoundError(f"Source '{label}' not found ({url}).")
    response.raise_for_status()
    return response.text.strip()


def resolve_revision(remote: RemoteRef, client: httpx.Client | None = None) -> str:
    """Return the commit SHA that a GitHub reference currently points to.

    Args:
        remote: Parsed ``github:`` reference; its ref (or the default branch) is resolved
        client: Optional httpx client to reuse

    Raises:
        RepoNotFoundError: If the repository or ref doesn't exist
        FetchError: If the lookup fails or doesn't return a commit SHA
    """
    if remote.kind is not RemoteKind.GITHUB:
        raise FetchError(f"Cannot pin '{remote.label}': only github: sources have revisions")

    url = f"{GITHUB_API_URL}/repos/{remote.owner}/{remote.repo}/commits/{remote.ref or 'HEAD'}"
    try:
        if client is None:
            with httpx.Client(follow_redirects=True, timeout=DOWNLOAD_TIMEOUT) as owned:
                sha = _fetch_sha(owned, url, remote.label)
        else:
            sha = _fetch_sha(client, url, remote.label)
    except httpx.HTTPStatusError as e:
        raise FetchError(f"Failed to resolve revision of '{remote.label}': {e}")
    except httpx.RequestError as e:
        raise FetchError(f"Network error while resolving '{remote.label}': {e}")

    if not _COMMIT_SHA.match(sha):
        raise FetchError(f"Unexpected revision for '{remote.label}': {sha[:80]!r}")
    return sha


def pin_revisions(manifest_path: Path, revisions: dict[str, str]) -> None:
    """Write ``rev`` for each named source into skills.toml.

    Comments and formatting of the rest of the file are kept.
    """
    try:
        doc = tomlkit.parse(manifest_path.read_text(encoding="utf-8"))
    except ParseError as e:
        raise ManifestParseError(f"Failed to parse {manifest_path}: {e}")
    except OSError as e:
        raise ManifestParseError(f"Cannot read {manifest_path}: {e.strerror or e}")

    for name, rev in revisions.items():
        doc["source"][name]["rev"] = rev

    manifest_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
