"""Source fetching for local directories and remote repositories."""

from dusk_skills.fetcher.download import (
    downloaded_source,
    _download_and_extract_tarball,
)
from dusk_skills.fetcher.lock import pin_revisions, resolve_revision
from dusk_skills.fetcher.resolve import SourceResolver
from dusk_skills.fetcher.types import (
    RemoteKind,
    RemoteRef,
    ResolvedSource,
    parse_source_url,
)

__all__ = [
    # Types
    "RemoteKind",
    "RemoteRef",
    "ResolvedSource",
    "parse_source_url",
    # Download operations
    "downloaded_source",
    "_download_and_extract_tarball",
    # Resolution
    "SourceResolver",
    # Pinning
    "pin_revisions",
    "resolve_revision",
]
