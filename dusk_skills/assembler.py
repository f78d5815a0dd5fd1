"""Assemble the output tree by copying source contents into place."""

import shutil
import stat
from dataclasses import dataclass, field
from pathlib import Path

from dusk_skills.constants import IGNORED_NAMES, OUTPUT_SUBDIRS
from dusk_skills.exceptions import AssemblyError
from dusk_skills.manifest import CopyStep


@dataclass
class CopyRecord:
    """Files written by one copy step, relative to the output tree."""

    source: str
    src: str
    dest: str
    files: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.files)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _copy_file(src: Path, dest: Path) -> None:
    """Copy one file, replacing whatever is at ``dest``.

    The copy is always owner-writable so a later step can overwrite it,
    even when the source lives in a read-only store.
    """
    if dest.exists() or dest.is_symlink():
        if dest.is_dir() and not dest.is_symlink():
            shutil.rmtree(dest)
        else:
            dest.chmod(dest.stat().st_mode | stat.S_IWUSR)
    shutil.copyfile(src, dest)
    mode = stat.S_IMODE(src.stat().st_mode) | stat.S_IWUSR
    dest.chmod(mode)


def _ensure_dir(path: Path) -> None:
    if path.exists() and not path.is_dir():
        _remove(path)
    path.mkdir(parents=True, exist_ok=True)


def _dir_key(path: Path) -> tuple[int, int]:
    st = path.stat()
    return st.st_dev, st.st_ino


def _copy_tree(
    src: Path,
    dest: Path,
    out_dir: Path,
    written: list[str],
    ancestors: frozenset[tuple[int, int]] = frozenset(),
) -> None:
    """Recursively merge the contents of ``src`` into ``dest``.

    Symlinks are followed, except a directory link back to one of its own
    ancestors, which is skipped.
    """
    ancestors = ancestors | {_dir_key(src)}
    _ensure_dir(dest)
    for child in sorted(src.iterdir(), key=lambda p: p.name):
        if child.name in IGNORED_NAMES:
            continue
        target = dest / child.name
        if child.is_dir():
            if _dir_key(child) in ancestors:
                continue
            _copy_tree(child, target, out_dir, written, ancestors)
        else:
            _copy_file(child, target)
            written.append(target.relative_to(out_dir).as_posix())


def prepare_output(out_dir: Path) -> None:
    """Create the output tree's fixed subdirectories."""
    for subdir in OUTPUT_SUBDIRS:
        (out_dir / subdir).mkdir(parents=True, exist_ok=True)


def copy_step(step: CopyStep, root: Path, out_dir: Path) -> CopyRecord:
    """Copy one step's source contents into the output tree.

    A directory has its contents merged into the destination; a single file
    is placed inside the destination directory under its own name. Existing
    files at the same path are overwritten silently.

    Raises:
        AssemblyError: If the source subpath doesn't exist or can't be copied
    """
    src_path = root / step.src if step.src else root
    dest_path = out_dir / step.dest if step.dest else out_dir
    label = f"{step.source}:{step.src or '.'}"

    if not src_path.exists():
        raise AssemblyError(f"Path '{step.src}' not found in source '{step.source}'")

    record = CopyRecord(source=step.source, src=step.src, dest=step.dest)
    try:
        if src_path.is_dir():
            _copy_tree(src_path, dest_path, out_dir, record.files)
        else:
            _ensure_dir(dest_path)
            target = dest_path / src_path.name
            _copy_file(src_path, target)
            record.files.append(target.relative_to(out_dir).as_posix())
    except OSError as e:
        raise AssemblyError(f"Failed to copy {label} to '{step.dest}': {e}")

    return record


def assemble(steps: list[CopyStep], roots: dict[str, Path], out_dir: Path) -> list[CopyRecord]:
    """Populate ``out_dir`` by running each copy step in declared order.

    Later steps win over earlier ones when they write the same path.

    Args:
        steps: Copy steps from the manifest
        roots: Local root directory of each resolved source, by name
        out_dir: Output tree to populate

    Returns:
        One CopyRecord per step, in order

    Raises:
        AssemblyError: If a step references an unresolved source or missing path
    """
    prepare_output(out_dir)
    records = []
    for step in steps:
        root = roots.get(step.source)
        if root is None:
            raise AssemblyError(f"Source '{step.source}' was not resolved")
        records.append(copy_step(step, root, out_dir))
    return records
