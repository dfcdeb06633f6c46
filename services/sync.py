# ──────────────────────────────────────────────────────────────────────────────
# File: services/sync.py
# Purpose: Sync orchestration: one source (resolve → download → prune → index →
#          inject → advance commit), the multi-source batch, and `add`.
#
# Guarantees
#   • Prune runs only after every download for the sync succeeded.
#   • source.commit changes only after download, prune, index and injection
#     all succeed; any failure leaves it untouched.
#   • In a batch, one source's failure never stops the remaining sources.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from core.logging import log_event
from services.config import (
    DocSource,
    MirrorConfig,
    default_local_path,
    ensure_registrable,
    register_source,
    select_sources,
    write_config,
)
from services.context_injector import inject_block
from services.errors import ConfigurationInvalid, DocMirrorError, RemoteNotFound, payload_for
from services.github_client import GitHubClient, RemoteEntry
from services.indexer import build_index
from services.mirror import materialize, normalize_root, prune, resolve_remote_files
from services.settings import Settings
from services.source_parser import is_repo_ref, parse_source

__all__ = [
    "SourceResult",
    "SyncReport",
    "AddResult",
    "local_root_for",
    "agents_path_for",
    "path_exists",
    "sync_source",
    "sync_sources",
    "add_source",
]

logger = logging.getLogger("docmirror.sync")


@dataclass
class SourceResult:
    name: str
    ok: bool
    file_count: int = 0
    commit: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def payload(self) -> Optional[Dict[str, Any]]:
        return payload_for(self.error, source=self.name) if self.error else None


@dataclass
class SyncReport:
    results: List[SourceResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> List[SourceResult]:
        return [r for r in self.results if not r.ok]


@dataclass(frozen=True)
class AddResult:
    source: DocSource
    file_count: int
    commit: str


def local_root_for(settings: Settings, source: DocSource) -> Path:
    """Mirror directory of ``source``; never the project root or one of its ancestors."""
    local = Path(source.local)
    root = local if local.is_absolute() else settings.project_root / local
    project = settings.project_root.resolve()
    resolved = root.resolve()
    if resolved == project or resolved in project.parents:
        raise ConfigurationInvalid(
            f"Source '{source.name}' mirrors into '{source.local}', which contains the project root",
            hint="Point 'local' at a directory inside the project, e.g. ./.docmirror/<name>.",
        )
    return root


def agents_path_for(settings: Settings, config: MirrorConfig) -> Path:
    agents = Path(config.agents_md)
    return agents if agents.is_absolute() else settings.project_root / agents


def path_exists(entries: Sequence[RemoteEntry], root: str) -> bool:
    root = normalize_root(root)
    prefix = root + "/"
    return any((e.path == root and e.kind == "directory") or e.path.startswith(prefix) for e in entries)


async def sync_source(
    source: DocSource,
    commit: str,
    *,
    client: GitHubClient,
    settings: Settings,
    agents_path: Path,
    entries: Optional[Sequence[RemoteEntry]] = None,
) -> int:
    """Mirror ``source`` at ``commit`` and refresh its block; returns the file count."""
    log_event("sync_started", {"source": source.name, "repo": source.repo, "commit": commit})
    try:
        local_root = local_root_for(settings, source)
        if entries is None:
            entries = await client.list_tree(source.repo, commit)
        files = resolve_remote_files(entries, source.path)
        expected = {f.relative_path for f in files}
        if not files:
            logger.warning("%s: no eligible files under '%s' at %s", source.name, source.path, commit[:7])

        async def _fetch(remote_path: str) -> str:
            return await client.fetch_file_content(source.repo, commit, remote_path)

        await materialize(local_root, files, _fetch, concurrency=settings.concurrency)
        removed = prune(local_root, expected)
        index_text = build_index(local_root)
        inject_block(agents_path, source, index_text, project_root=settings.project_root)
    except Exception as exc:
        log_event("sync_failed", payload_for(exc, source=source.name), level=logging.WARNING)
        raise

    source.commit = commit
    log_event(
        "sync_completed",
        {"source": source.name, "commit": commit, "files": len(expected), "removed": len(removed)},
    )
    return len(expected)


async def sync_sources(
    config: MirrorConfig,
    *,
    client: GitHubClient,
    settings: Settings,
    name: Optional[str] = None,
) -> SyncReport:
    """Sync every selected source to its branch head, persisting after each success."""
    report = SyncReport()
    agents_path = agents_path_for(settings, config)

    for source in select_sources(config, name):
        previous = source.commit
        try:
            latest = await client.resolve_latest_commit(source.repo, source.branch)
            count = await sync_source(source, latest, client=client, settings=settings, agents_path=agents_path)
            write_config(settings.project_root, config)
        except Exception as exc:
            source.commit = previous
            if isinstance(exc, DocMirrorError):
                logger.info("%s: sync failed: %s", source.name, exc)
            else:
                logger.exception("%s: unexpected failure during sync", source.name)
            report.results.append(SourceResult(source.name, ok=False, error=exc))
            continue
        report.results.append(SourceResult(source.name, ok=True, file_count=count, commit=latest))

    return report


async def add_source(
    config: MirrorConfig,
    text: str,
    *,
    client: GitHubClient,
    settings: Settings,
    name: Optional[str] = None,
    path: Optional[str] = None,
    branch: Optional[str] = None,
) -> AddResult:
    """Register a new source from a tree URL or owner/repo, then run its first sync."""
    parsed = parse_source(text)
    if parsed is None and not is_repo_ref(text):
        raise ConfigurationInvalid(
            f"Invalid input '{text}'. Use a GitHub URL or owner/repo format.",
            hint="Example: docmirror add https://github.com/vercel/ai/tree/main/content/docs",
        )
    repo = parsed.repo if parsed else text.strip()

    try:
        default_branch = await client.resolve_default_branch(repo)
    except RemoteNotFound as exc:
        raise RemoteNotFound(f"Repository not found: {repo}") from exc

    docs_path = normalize_root(parsed.path if parsed else (path or "docs"))
    track = branch or (parsed.branch if parsed else default_branch)
    source_name = name or repo.split("/", 1)[1]
    ensure_registrable(config, source_name)

    commit = await client.resolve_latest_commit(repo, track)
    entries = await client.list_tree(repo, commit)
    if not path_exists(entries, docs_path):
        raise RemoteNotFound(f"Path '{docs_path}' not found in {repo}")

    source = DocSource(
        name=source_name,
        repo=repo,
        path=docs_path,
        branch=track,
        local=default_local_path(source_name),
    )
    register_source(config, source)
    write_config(settings.project_root, config)

    count = await sync_source(
        source,
        commit,
        client=client,
        settings=settings,
        agents_path=agents_path_for(settings, config),
        entries=entries,
    )
    write_config(settings.project_root, config)
    return AddResult(source=source, file_count=count, commit=commit)
