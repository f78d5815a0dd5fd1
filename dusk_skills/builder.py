"""Build pipeline: resolve sources, assemble the output tree, substitute tokens.

A build is all-or-nothing. The tree is assembled in a staging directory
next to the requested output and only moved into place once every step
has succeeded, so a failed build never leaves a partial tree behind and
a previous successful output stays untouched.
"""

import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from dusk_skills.assembler import CopyRecord, assemble
from dusk_skills.fetcher import SourceResolver
from dusk_skills.manifest import Manifest
from dusk_skills.substitute import (
    SubstitutionRecord,
    resolve_substitution_value,
    substitute_in_place,
)


@dataclass
class BuildResult:
    """Result of a successful build."""

    out_dir: Path
    copies: list[CopyRecord] = field(default_factory=list)
    substitutions: list[SubstitutionRecord] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        """Number of distinct files in the output tree."""
        return len({f for record in self.copies for f in record.files})


def _make_staging_dir(out_dir: Path) -> Path:
    out_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}.build-", dir=out_dir.parent))
    staging.chmod(0o755)
    return staging


def _commit(staging: Path, out_dir: Path) -> None:
    """Move the staged tree into place, replacing any previous output."""
    if not (out_dir.exists() or out_dir.is_symlink()):
        staging.rename(out_dir)
        return

    previous = Path(tempfile.mkdtemp(prefix=f".{out_dir.name}.old-", dir=out_dir.parent))
    previous.rmdir()
    out_dir.rename(previous)
    staging.rename(out_dir)
    if previous.is_dir() and not previous.is_symlink():
        shutil.rmtree(previous)
    else:
        previous.unlink()


def build(
    manifest: Manifest,
    out_dir: Path,
    overrides: dict[str, str] | None = None,
    client: httpx.Client | None = None,
) -> BuildResult:
    """
    Build the output tree described by ``manifest`` into ``out_dir``.

    Every declared source and every substitution value is resolved before
    anything is written.

    Args:
        manifest: Loaded manifest
        out_dir: Output directory, replaced wholesale on success
        overrides: Replacement values by token, taking precedence over the manifest
        client: Optional httpx client for remote downloads

    Returns:
        BuildResult describing what was copied and substituted

    Raises:
        SourceNotFoundError: If any source can't be resolved
        SubstitutionValueError: If a replacement value can't be resolved
        AssemblyError: If a copy step fails
        SubstitutionError: If a token is missing from its target file
    """
    out_dir = out_dir.absolute()

    with SourceResolver(manifest.source_root_dir, client) as resolver:
        resolved = resolver.resolve_all(list(manifest.sources.values()))
        values = [resolve_substitution_value(sub, overrides) for sub in manifest.substitutions]

        staging = _make_staging_dir(out_dir)
        try:
            roots = {name: source.root for name, source in resolved.items()}
            result = BuildResult(out_dir=out_dir)
            result.copies = assemble(manifest.copies, roots, staging)

            for sub, value in zip(manifest.substitutions, values):
                count = substitute_in_place(
                    staging / sub.file, sub.token, value, label=sub.file
                )
                result.substitutions.append(
                    SubstitutionRecord(file=sub.file, token=sub.token, value=value, count=count)
                )

            _commit(staging, out_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

    return result
