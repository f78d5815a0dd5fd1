"""Tests for output tree assembly."""

import os
import stat
from pathlib import Path

import pytest

from conftest import tree_bytes, write_files
from dusk_skills.assembler import assemble, copy_step, prepare_output
from dusk_skills.exceptions import AssemblyError
from dusk_skills.manifest import CopyStep


@pytest.fixture
def sources(tmp_path: Path) -> dict[str, Path]:
    upstream = tmp_path / "upstream"
    write_files(
        upstream,
        {
            "SKILL.md": "upstream skill\n",
            "README.md": "readme\n",
            "references/api.md": "api\n",
            ".git/HEAD": "ref: refs/heads/main\n",
            ".github/workflows/ci.yml": "on: push\n",
        },
    )
    local = tmp_path / "local"
    write_files(local, {"playwright/SKILL.md": "local skill\n"})
    return {"upstream": upstream, "local": local}


class TestPrepareOutput:

    def test_creates_fixed_subdirectories(self, tmp_path: Path):
        out = tmp_path / "out"
        prepare_output(out)
        assert (out / "prompts").is_dir()
        assert (out / "skills").is_dir()


class TestCopyStep:
    """Tests for copy_step."""

    def test_directory_contents_copied_byte_identical(self, tmp_path: Path, sources):
        out = tmp_path / "out"
        record = copy_step(
            CopyStep(source="upstream", dest="skills/humanizer"), sources["upstream"], out
        )

        copied = tree_bytes(out / "skills" / "humanizer")
        expected = {
            rel: data for rel, data in tree_bytes(sources["upstream"]).items()
            if not rel.startswith(".git/")
        }
        assert copied == expected
        assert sorted(record.files) == sorted(f"skills/humanizer/{rel}" for rel in expected)

    def test_git_metadata_skipped(self, tmp_path: Path, sources):
        out = tmp_path / "out"
        copy_step(CopyStep(source="upstream", dest="x"), sources["upstream"], out)
        assert not (out / "x" / ".git").exists()
        assert (out / "x" / ".github" / "workflows" / "ci.yml").is_file()

    def test_single_file_placed_inside_destination(self, tmp_path: Path, sources):
        out = tmp_path / "out"
        record = copy_step(
            CopyStep(source="upstream", src="SKILL.md", dest="skills/design-taste-frontend"),
            sources["upstream"],
            out,
        )
        assert record.files == ["skills/design-taste-frontend/SKILL.md"]
        assert (out / "skills/design-taste-frontend/SKILL.md").read_text() == "upstream skill\n"

    def test_missing_subpath(self, tmp_path: Path, sources):
        with pytest.raises(AssemblyError, match="'nope' not found in source 'upstream'"):
            copy_step(
                CopyStep(source="upstream", src="nope", dest="skills/x"),
                sources["upstream"],
                tmp_path / "out",
            )

    def test_read_only_sources_stay_overwritable(self, tmp_path: Path, sources):
        upstream = sources["upstream"]
        skill = upstream / "SKILL.md"
        skill.chmod(0o444)
        out = tmp_path / "out"

        copy_step(CopyStep(source="upstream", dest="skills/p"), upstream, out)
        copied = out / "skills/p/SKILL.md"
        assert copied.stat().st_mode & stat.S_IWUSR
        assert copied.stat().st_mode & stat.S_IRGRP

        copy_step(CopyStep(source="upstream", src="SKILL.md", dest="skills/p"), upstream, out)
        assert copied.read_text() == "upstream skill\n"

    def test_executable_bit_preserved(self, tmp_path: Path, sources):
        script = sources["upstream"] / "run.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)
        out = tmp_path / "out"

        copy_step(CopyStep(source="upstream", src="run.sh", dest="bin"), sources["upstream"], out)

        assert os.access(out / "bin" / "run.sh", os.X_OK)

    def test_symlinks_are_dereferenced(self, tmp_path: Path, sources):
        upstream = sources["upstream"]
        (upstream / "LINK.md").symlink_to(upstream / "README.md")
        out = tmp_path / "out"

        copy_step(CopyStep(source="upstream", dest="x"), upstream, out)

        copied = out / "x" / "LINK.md"
        assert not copied.is_symlink()
        assert copied.read_text() == "readme\n"


class TestAssemble:
    """Tests for assemble."""

    def test_later_steps_overwrite_earlier_ones(self, tmp_path: Path, sources):
        out = tmp_path / "out"
        steps = [
            CopyStep(source="upstream", dest="skills/playwright"),
            CopyStep(source="local", src="playwright/SKILL.md", dest="skills/playwright"),
        ]

        records = assemble(steps, sources, out)

        assert len(records) == 2
        assert (out / "skills/playwright/SKILL.md").read_text() == "local skill\n"
        assert (out / "skills/playwright/README.md").read_text() == "readme\n"

    def test_file_replaced_by_directory(self, tmp_path: Path, sources):
        local = sources["local"]
        write_files(local, {"flat/references": "i am a file\n"})
        out = tmp_path / "out"
        steps = [
            CopyStep(source="local", src="flat", dest="skills/x"),
            CopyStep(source="upstream", dest="skills/x"),
        ]

        assemble(steps, sources, out)

        assert (out / "skills/x/references/api.md").read_text() == "api\n"

    def test_creates_fixed_subdirectories_even_without_steps(self, tmp_path: Path):
        out = tmp_path / "out"
        assert assemble([], {}, out) == []
        assert sorted(p.name for p in out.iterdir()) == ["prompts", "skills"]

    def test_unresolved_source(self, tmp_path: Path):
        with pytest.raises(AssemblyError, match="'ghost' was not resolved"):
            assemble([CopyStep(source="ghost", dest="prompts")], {}, tmp_path / "out")


class TestSymlinkCycles:
    """Directory links back to an ancestor are not followed."""

    def test_link_to_parent_is_skipped(self, tmp_path: Path, sources):
        upstream = sources["upstream"]
        (upstream / "references" / "self").symlink_to("..")
        out = tmp_path / "out"

        record = copy_step(CopyStep(source="upstream", dest="skills/x"), upstream, out)

        assert (out / "skills/x/references/api.md").read_text() == "api\n"
        assert not (out / "skills/x/references/self").exists()
        assert "skills/x/references/self/SKILL.md" not in record.files

    def test_link_to_sibling_is_copied(self, tmp_path: Path, sources):
        upstream = sources["upstream"]
        (upstream / "docs").symlink_to("references")
        out = tmp_path / "out"

        copy_step(CopyStep(source="upstream", dest="x"), upstream, out)

        assert (out / "x/docs/api.md").read_text() == "api\n"
        assert not (out / "x/docs").is_symlink()
