# File: conftest.py
# Directory: tests
# Purpose: Shared test fixtures: in-memory GitHub fake, project root, settings.
#
# Notes:
# - FakeGitHub mirrors the async surface of services.github_client.GitHubClient.
# - Paths listed in `fail_on` raise the configured error when fetched.

import asyncio
from typing import Dict, List, Optional

import pytest

from services.config import DocSource, MirrorConfig, default_local_path
from services.errors import RemoteNotFound, RemoteUnavailable
from services.github_client import ChangedFile, RemoteEntry
from services.settings import Settings

# --- Fake GitHub ------------------------------------------------------------------------------


class FakeGitHub:
    def __init__(
        self,
        files: Dict[str, str],
        *,
        repo: str = "acme/widgets",
        head: str = "c0ffee1234567890",
        default_branch: str = "main",
        extra_entries: Optional[List[RemoteEntry]] = None,
    ):
        self.repo = repo
        self.files = dict(files)
        self.head = head
        self.default_branch = default_branch
        self.extra_entries = list(extra_entries or [])
        self.fail_on: Dict[str, Exception] = {}
        self.changes: List[ChangedFile] = []
        self.fetched: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    def _check_repo(self, repo: str) -> None:
        if repo != self.repo:
            raise RemoteNotFound(f"Not found: {repo}")

    async def resolve_default_branch(self, repo: str) -> str:
        self._check_repo(repo)
        return self.default_branch

    async def resolve_latest_commit(self, repo: str, ref: str) -> str:
        self._check_repo(repo)
        return self.head

    async def list_tree(self, repo: str, commit: str) -> List[RemoteEntry]:
        self._check_repo(repo)
        dirs = set()
        for path in self.files:
            parts = path.split("/")[:-1]
            for i in range(1, len(parts) + 1):
                dirs.add("/".join(parts[:i]))
        entries = [RemoteEntry(d, "directory") for d in sorted(dirs)]
        entries += [RemoteEntry(p, "file") for p in sorted(self.files)]
        return entries + self.extra_entries

    async def fetch_file_content(self, repo: str, commit: str, path: str) -> str:
        self._check_repo(repo)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if path in self.fail_on:
                raise self.fail_on[path]
            self.fetched.append(path)
            return self.files[path]
        finally:
            self.in_flight -= 1

    async def compare_revisions(self, repo: str, base: str, head: str) -> List[ChangedFile]:
        self._check_repo(repo)
        return list(self.changes)


# --- Fixtures ---------------------------------------------------------------------------------


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def settings(project_root):
    return Settings(project_root=project_root, concurrency=3)


@pytest.fixture
def remote_docs():
    return {
        "docs/overview.md": "# Overview\n",
        "docs/guides/intro.md": "intro\r\nwindows line endings\r\n",
        "docs/guides/setup.mdx": "<Setup />\n",
        "docs/logo.png": "not really a png",
        "README.md": "top-level readme, out of scope\n",
    }


@pytest.fixture
def fake_github(remote_docs):
    return FakeGitHub(remote_docs)


@pytest.fixture
def source():
    return DocSource(
        name="widgets",
        repo="acme/widgets",
        path="docs/",
        branch="main",
        local=default_local_path("widgets"),
    )


@pytest.fixture
def config(source):
    return MirrorConfig(sources=[source])


@pytest.fixture
def network_down():
    return RemoteUnavailable("ConnectError while requesting https://raw.githubusercontent.com")
