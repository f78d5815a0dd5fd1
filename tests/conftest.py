"""Test configuration and fixtures."""

import io
import os
import tarfile
from pathlib import Path

import httpx
import pytest

from dusk_skills.manifest import Manifest

PLAYWRIGHT_PATH = "/nix/store/xxxx/bin/playwright-cli"

JJ_COMMIT = "# jj commit\n\nRun `jj describe` then `jj new`.\n"
RUST_PROPTEST = "---\nname: rust-proptest\n---\n\n# proptest\n\nUse `proptest!`.\n"
PLAYWRIGHT_SKILL = (
    "---\nname: playwright\n---\n\n"
    "Use `##PLAYWRIGHT-CLI##` for everything.\r\n"
    "Screenshot: `##PLAYWRIGHT-CLI## screenshot page.png`\n"
    "Keep PLAYWRIGHT-CLI and #PLAYWRIGHT-CLI# as they are.\n"
)

LOCAL_MANIFEST = """\
name = "test-skills"

[source.local]
path = "."

[[copy]]
source = "local"
from = "prompts"
to = "prompts"

[[copy]]
source = "local"
from = "skills/rust-proptest"
to = "skills/rust-proptest"

[[copy]]
source = "local"
from = "skills/playwright"
to = "skills/playwright"

[[substitute]]
file = "skills/playwright/SKILL.md"
token = "##PLAYWRIGHT-CLI##"
value = "/nix/store/xxxx/bin/playwright-cli"
"""


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "network: tests that make real network requests")


@pytest.fixture(autouse=True)
def skip_network_unless_enabled(request):
    """Skip network tests unless DUSK_SKILLS_NETWORK_TESTS is set."""
    if request.node.get_closest_marker("network"):
        if os.environ.get("DUSK_SKILLS_NETWORK_TESTS", "").lower() not in ("1", "true", "yes"):
            pytest.skip("Network tests disabled (set DUSK_SKILLS_NETWORK_TESTS=1)")


def write_files(root: Path, files: dict[str, str]) -> None:
    """Write text files below root, creating parent directories."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)


def tree_bytes(root: Path) -> dict[str, bytes]:
    """Map every file below root to its bytes, keyed by relative POSIX path."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def make_tarball(
    files: dict[str, str],
    top: str = "skills-0123abc",
    links: dict[str, str] | None = None,
) -> bytes:
    """Build a gzipped tarball shaped like a GitHub archive download.

    ``links`` maps symlink paths to their targets.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for rel_path, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{top}/{rel_path}")
            info.size = len(data)
            info.mode = 0o444
            tar.addfile(info, io.BytesIO(data))
        for rel_path, target in (links or {}).items():
            info = tarfile.TarInfo(f"{top}/{rel_path}")
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buf.getvalue()


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """A repository with local prompts, skills and a local-only skills.toml."""
    root = tmp_path / "repo"
    write_files(
        root,
        {
            "prompts/jj-commit.md": JJ_COMMIT,
            "skills/rust-proptest/SKILL.md": RUST_PROPTEST,
            "skills/playwright/SKILL.md": PLAYWRIGHT_SKILL,
            "skills.toml": LOCAL_MANIFEST,
        },
    )
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def manifest(project: Path) -> Manifest:
    return Manifest.load(project / "skills.toml")


@pytest.fixture
def archive_client():
    """Return a factory for httpx clients serving tarballs by URL path.

    Unknown paths answer 404.
    """
    clients = []

    def _make(archives: dict[str, bytes]) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            body = archives.get(request.url.path)
            if body is None:
                return httpx.Response(404)
            return httpx.Response(200, content=body)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
