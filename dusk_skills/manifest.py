"""Manifest management for skills.toml."""

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import tomli
import tomli_w

from dusk_skills.constants import MANIFEST_FILENAME, PROMPTS_SUBDIR, SKILLS_SUBDIR
from dusk_skills.exceptions import (
    ManifestNotFoundError,
    ManifestParseError,
    ManifestValidationError,
)
from dusk_skills.fetcher.types import RemoteKind, RemoteRef, parse_source_url


def _check_relative(value: Any, what: str, allow_empty: bool = True) -> str:
    """Validate a manifest path that must stay inside its root."""
    if not isinstance(value, str):
        raise ManifestValidationError(f"{what} must be a string, got {type(value).__name__}")
    if not value and not allow_empty:
        raise ManifestValidationError(f"{what} cannot be empty")
    path = PurePosixPath(value)
    if path.is_absolute() or ".." in path.parts:
        raise ManifestValidationError(f"{what} '{value}' must be a relative path without '..'")
    return value


def _optional_str(data: dict[str, Any], key: str, what: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ManifestValidationError(f"{what} '{key}' must be a string")
    return value


@dataclass(frozen=True)
class Source:
    """A named collection of documents.

    Examples:
        [source.local]
        path = "."

        [source.skillset-openai]
        url = "github:openai/skills"
        rev = "5d1f0c2"
    """

    name: str
    path: str | None = None
    url: str | None = None
    rev: str | None = None

    @property
    def is_local(self) -> bool:
        return self.path is not None

    @property
    def remote(self) -> RemoteRef | None:
        """Parsed remote reference, None for local sources."""
        if self.url is None:
            return None
        return parse_source_url(self.url)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "Source":
        """Create a Source from a TOML dict entry."""
        what = f"Source '{name}'"
        path = _optional_str(data, "path", what)
        url = _optional_str(data, "url", what)
        rev = _optional_str(data, "rev", what)

        if (path is None) == (url is None):
            raise ManifestValidationError(f"{what} must set exactly one of 'path' or 'url'")
        if url is not None:
            remote = parse_source_url(url)
            if rev is not None and remote.kind is not RemoteKind.GITHUB:
                raise ManifestValidationError(
                    f"{what} is a plain tarball URL; 'rev' only applies to github: sources"
                )
        elif rev is not None:
            raise ManifestValidationError(f"{what} is local; 'rev' only applies to 'url' sources")

        return cls(name=name, path=path, url=url, rev=rev)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a TOML-serializable dict."""
        result: dict[str, Any] = {}
        if self.path is not None:
            result["path"] = self.path
        if self.url is not None:
            result["url"] = self.url
        if self.rev:
            result["rev"] = self.rev
        return result


@dataclass(frozen=True)
class CopyStep:
    """Copy the contents of a source subpath into the output tree.

    Example:
        [[copy]]
        source = "skill-design-taste-frontend"
        from = "SKILL.md"
        to = "skills/design-taste-frontend"
    """

    source: str
    dest: str
    src: str = ""

    @classmethod
    def from_dict(cls, index: int, data: dict[str, Any]) -> "CopyStep":
        """Create a CopyStep from a TOML array entry."""
        what = f"Copy step {index + 1}"
        if "source" not in data:
            raise ManifestValidationError(f"{what} missing required 'source' field")
        if "to" not in data:
            raise ManifestValidationError(f"{what} missing required 'to' field")
        source = data["source"]
        if not isinstance(source, str):
            raise ManifestValidationError(f"{what} 'source' must be a string")
        return cls(
            source=source,
            src=_check_relative(data.get("from", ""), f"{what} 'from'"),
            dest=_check_relative(data["to"], f"{what} 'to'"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a TOML-serializable dict."""
        result: dict[str, Any] = {"source": self.source}
        if self.src:
            result["from"] = self.src
        result["to"] = self.dest
        return result


@dataclass(frozen=True)
class Substitution:
    """Replace a sentinel token in one output file.

    Exactly one of ``value`` (literal replacement) or ``executable``
    (program name looked up on PATH at build time) is set.
    """

    file: str
    token: str
    value: str | None = None
    executable: str | None = None

    @classmethod
    def from_dict(cls, index: int, data: dict[str, Any]) -> "Substitution":
        """Create a Substitution from a TOML array entry."""
        what = f"Substitution {index + 1}"
        if "file" not in data:
            raise ManifestValidationError(f"{what} missing required 'file' field")
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise ManifestValidationError(f"{what} requires a non-empty 'token'")
        value = _optional_str(data, "value", what)
        executable = _optional_str(data, "executable", what)
        if (value is None) == (executable is None):
            raise ManifestValidationError(
                f"{what} must set exactly one of 'value' or 'executable'"
            )
        return cls(
            file=_check_relative(data["file"], f"{what} 'file'", allow_empty=False),
            token=token,
            value=value,
            executable=executable,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a TOML-serializable dict."""
        result: dict[str, Any] = {"file": self.file, "token": self.token}
        if self.value is not None:
            result["value"] = self.value
        if self.executable is not None:
            result["executable"] = self.executable
        return result


@dataclass
class Manifest:
    """Build manifest loaded from skills.toml."""

    path: Path
    name: str = "dusk-skills"
    sources: dict[str, Source] = field(default_factory=dict)
    copies: list[CopyStep] = field(default_factory=list)
    substitutions: list[Substitution] = field(default_factory=list)

    @property
    def source_root_dir(self) -> Path:
        """Directory that local source paths are relative to."""
        return self.path.parent

    @property
    def tokens(self) -> list[str]:
        """Distinct tokens named by substitutions, in declared order."""
        return list(dict.fromkeys(sub.token for sub in self.substitutions))

    @classmethod
    def load(cls, path: Path) -> "Manifest":
        """Load a manifest from skills.toml.

        Args:
            path: Path to the skills.toml file

        Returns:
            Parsed Manifest

        Raises:
            ManifestNotFoundError: If the file doesn't exist
            ManifestParseError: If the file cannot be parsed
            ManifestValidationError: If the manifest is invalid
        """
        if not path.exists():
            raise ManifestNotFoundError(f"Manifest not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ManifestParseError(f"Failed to parse {path}: {e}")
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"Failed to parse {path}: not valid UTF-8 ({e.reason})")
        except OSError as e:
            raise ManifestParseError(f"Cannot read {path}: {e.strerror or e}")

        return cls._from_dict(path, data)

    @classmethod
    def _from_dict(cls, path: Path, data: dict[str, Any]) -> "Manifest":
        """Create a Manifest from a parsed TOML dict."""
        name = data.get("name", "dusk-skills")
        if not isinstance(name, str):
            raise ManifestValidationError("'name' must be a string")
        manifest = cls(path=path, name=name)

        sources_data = data.get("source", {})
        if not isinstance(sources_data, dict):
            raise ManifestValidationError("'source' must be a table of named sources")
        for source_name, source_config in sources_data.items():
            if not isinstance(source_config, dict):
                raise ManifestValidationError(
                    f"Source '{source_name}' must be a table, got {type(source_config).__name__}"
                )
            manifest.sources[source_name] = Source.from_dict(source_name, source_config)

        copies_data = data.get("copy", [])
        if not isinstance(copies_data, list):
            raise ManifestValidationError("'copy' must be an array of tables ([[copy]])")
        for index, step_config in enumerate(copies_data):
            if not isinstance(step_config, dict):
                raise ManifestValidationError(f"Copy step {index + 1} must be a table")
            step = CopyStep.from_dict(index, step_config)
            if step.source not in manifest.sources:
                raise ManifestValidationError(
                    f"Copy step {index + 1} uses undeclared source '{step.source}'"
                )
            manifest.copies.append(step)

        subs_data = data.get("substitute", [])
        if not isinstance(subs_data, list):
            raise ManifestValidationError(
                "'substitute' must be an array of tables ([[substitute]])"
            )
        for index, sub_config in enumerate(subs_data):
            if not isinstance(sub_config, dict):
                raise ManifestValidationError(f"Substitution {index + 1} must be a table")
            manifest.substitutions.append(Substitution.from_dict(index, sub_config))

        return manifest

    def save(self) -> None:
        """Save the manifest to its path."""
        with open(self.path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    def _to_dict(self) -> dict[str, Any]:
        """Convert to a TOML-serializable dict."""
        data: dict[str, Any] = {"name": self.name}
        if self.sources:
            data["source"] = {name: src.to_dict() for name, src in self.sources.items()}
        if self.copies:
            data["copy"] = [step.to_dict() for step in self.copies]
        if self.substitutions:
            data["substitute"] = [sub.to_dict() for sub in self.substitutions]
        return data


def find_manifest(start_path: Path | None = None) -> Path | None:
    """Find skills.toml by walking up the directory tree.

    Args:
        start_path: Starting directory (defaults to current working directory)

    Returns:
        Path to skills.toml if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while True:
        manifest_path = current / MANIFEST_FILENAME
        if manifest_path.exists():
            return manifest_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def default_manifest(path: Path, name: str = "dusk-skills") -> Manifest:
    """Return a starter manifest bundling the local prompts/ and skills/ directories."""
    local = Source(name="local", path=".")
    return Manifest(
        path=path,
        name=name,
        sources={local.name: local},
        copies=[
            CopyStep(source=local.name, src=PROMPTS_SUBDIR, dest=PROMPTS_SUBDIR),
            CopyStep(source=local.name, src=SKILLS_SUBDIR, dest=SKILLS_SUBDIR),
        ],
        substitutions=[],
    )
