"""HTTP and tarball download operations for fetching remote sources."""

import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import httpx

from dusk_skills.exceptions import FetchError, RepoNotFoundError
from dusk_skills.fetcher.types import RemoteRef

DOWNLOAD_TIMEOUT = 30.0


def _write_tarball(client: httpx.Client, tarball_url: str, label: str, tarball_path: Path) -> None:
    response = client.get(tarball_url)
    if response.status_code == 404:
        raise RepoNotFoundError(f"Source '{label}' not found ({tarball_url}).")
    response.raise_for_status()
    tarball_path.write_bytes(response.content)


def _archive_root(extract_path: Path) -> Path:
    """Return the archive's single top-level directory, or the extraction dir itself."""
    entries = list(extract_path.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return extract_path


def _download_and_extract_tarball(
    tarball_url: str,
    label: str,
    tmp_path: Path,
    client: httpx.Client | None = None,
) -> Path:
    """Download and extract a tarball, returning the source root directory."""
    tarball_path = tmp_path / "source.tar.gz"

    try:
        if client is None:
            with httpx.Client(follow_redirects=True, timeout=DOWNLOAD_TIMEOUT) as owned:
                _write_tarball(owned, tarball_url, label, tarball_path)
        else:
            _write_tarball(client, tarball_url, label, tarball_path)
    except httpx.HTTPStatusError as e:
        raise FetchError(f"Failed to download '{label}': {e}")
    except httpx.RequestError as e:
        raise FetchError(f"Network error while fetching '{label}': {e}")

    extract_path = tmp_path / "extracted"
    try:
        with tarfile.open(tarball_path, "r:*") as tar:
            tar.extractall(extract_path, filter="data")
    except tarfile.TarError as e:
        raise FetchError(f"Downloaded archive for '{label}' is not a valid tarball: {e}")

    return _archive_root(extract_path)


@contextmanager
def downloaded_source(
    remote: RemoteRef,
    rev: str | None = None,
    client: httpx.Client | None = None,
) -> Generator[Path, None, None]:
    """
    Context manager that downloads a remote source and yields its root directory.

    The download lives in a temporary directory removed when the context exits.

    Args:
        remote: Parsed remote reference
        rev: Optional pinned revision, overrides any ref in the reference
        client: Optional httpx client to reuse across downloads

    Yields:
        Path to the extracted source directory

    Raises:
        RepoNotFoundError: If the repository or revision doesn't exist
        FetchError: If the download fails for any other reason
    """
    with tempfile.TemporaryDirectory(prefix="dusk-skills-src-") as tmp_dir:
        yield _download_and_extract_tarball(
            remote.tarball_url(rev), remote.label, Path(tmp_dir), client
        )
