# ─────────────────────────────────────────────────────────────────────────────
# File: upstream.py
# Directory: services
# Purpose: Compare recorded source commits with upstream (status) and list the
#          files changed upstream since the last sync (diff).
#
# Upstream:
#   - Imports: dataclasses, services.config, services.github_client
#
# Downstream:
#   - main (status / diff commands)
#
# Contents:
#   - short_sha()
#   - check_status() / check_all()
#   - diff_source() / diff_all()
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from services.config import DocSource
from services.github_client import ChangedFile, GitHubClient
from services.mirror import normalize_root

NEVER_SYNCED = "never_synced"
UP_TO_DATE = "up_to_date"
BEHIND = "behind"
FAILED = "error"


def short_sha(commit: Optional[str]) -> str:
    return (commit or "")[:7]


@dataclass(frozen=True)
class SourceStatus:
    name: str
    state: str
    local_commit: Optional[str] = None
    remote_commit: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state == UP_TO_DATE


@dataclass(frozen=True)
class SourceDiff:
    name: str
    synced: bool
    files: List[ChangedFile] = field(default_factory=list)
    error: Optional[Exception] = None


async def check_status(source: DocSource, client: GitHubClient) -> SourceStatus:
    if not source.commit:
        return SourceStatus(source.name, NEVER_SYNCED)
    try:
        latest = await client.resolve_latest_commit(source.repo, source.branch)
    except Exception as exc:
        return SourceStatus(source.name, FAILED, local_commit=source.commit, error=exc)
    state = UP_TO_DATE if latest == source.commit else BEHIND
    return SourceStatus(source.name, state, local_commit=source.commit, remote_commit=latest)


async def check_all(sources: Iterable[DocSource], client: GitHubClient) -> List[SourceStatus]:
    return [await check_status(s, client) for s in sources]


async def diff_source(source: DocSource, client: GitHubClient) -> SourceDiff:
    """Files under the source's path changed between its commit and its branch head."""
    if not source.commit:
        return SourceDiff(source.name, synced=False)
    try:
        changed = await client.compare_revisions(source.repo, source.commit, source.branch)
    except Exception as exc:
        return SourceDiff(source.name, synced=True, error=exc)
    prefix = normalize_root(source.path) + "/"
    return SourceDiff(source.name, synced=True, files=[f for f in changed if f.path.startswith(prefix)])


async def diff_all(sources: Iterable[DocSource], client: GitHubClient) -> List[SourceDiff]:
    return [await diff_source(s, client) for s in sources]
