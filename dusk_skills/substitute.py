"""Sentinel token substitution in assembled output files."""

import shutil
from dataclasses import dataclass
from pathlib import Path

from dusk_skills.exceptions import SubstitutionError, SubstitutionValueError
from dusk_skills.manifest import Substitution


@dataclass
class SubstitutionRecord:
    """Outcome of one substitution."""

    file: str
    token: str
    value: str
    count: int


def _read_text(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def substitute_in_place(
    path: Path,
    token: str,
    value: str,
    strict: bool = True,
    label: str | None = None,
) -> int:
    """Replace every literal occurrence of ``token`` in ``path`` with ``value``.

    Line endings and all text outside the token occurrences are preserved.

    Args:
        path: File to rewrite
        token: Literal text to replace
        value: Replacement text
        strict: Fail when the token doesn't occur in the file
        label: Name used for the file in error messages, defaults to ``path``

    Returns:
        Number of occurrences replaced

    Raises:
        SubstitutionError: If the file is missing or unreadable, or if
            ``strict`` is set and the token is absent
    """
    if not token:
        raise SubstitutionError("Substitution token cannot be empty")
    if label is None:
        label = str(path)
    if not path.is_file():
        raise SubstitutionError(f"Cannot substitute '{token}': file not found: {label}")

    try:
        content = _read_text(path)
    except UnicodeDecodeError as e:
        raise SubstitutionError(f"Cannot read {label}: not valid UTF-8 ({e.reason})")
    except OSError as e:
        raise SubstitutionError(f"Cannot read {label}: {e.strerror}")

    count = content.count(token)
    if count == 0:
        if strict:
            raise SubstitutionError(f"Token '{token}' not found in {label}")
        return 0

    try:
        _write_text(path, content.replace(token, value))
    except OSError as e:
        raise SubstitutionError(f"Cannot write {label}: {e.strerror}")
    return count


def resolve_substitution_value(sub: Substitution, overrides: dict[str, str] | None = None) -> str:
    """Work out the replacement text for a substitution.

    Precedence: an override for the token, then the literal ``value``, then
    the absolute path of ``executable`` found on PATH.

    Raises:
        SubstitutionValueError: If the executable can't be found
    """
    if overrides and sub.token in overrides:
        return overrides[sub.token]
    if sub.value is not None:
        return sub.value

    found = shutil.which(sub.executable or "")
    if found is None:
        raise SubstitutionValueError(
            f"Executable '{sub.executable}' for token '{sub.token}' not found on PATH. "
            f"Install it or pass --set '{sub.token}=/path/to/{sub.executable}'."
        )
    return str(Path(found).absolute())


def find_unresolved_tokens(out_dir: Path, tokens: list[str]) -> list[tuple[str, str]]:
    """Find output files that still contain any of ``tokens``.

    Files that aren't UTF-8 text are skipped.

    Returns:
        Sorted (relative path, token) pairs
    """
    found = []
    for path in sorted(p for p in out_dir.rglob("*") if p.is_file()):
        try:
            content = _read_text(path)
        except UnicodeDecodeError:
            continue
        for token in tokens:
            if token in content:
                found.append((path.relative_to(out_dir).as_posix(), token))
    return found
