# ──────────────────────────────────────────────────────────────────────────────
# File: services/mirror.py
# Purpose: Local mirror reconciliation: eligibility filter, remote scope
#          resolution, bounded materialization and pruning of orphaned files.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Set

from core.logging import log_event
from services.errors import LocalIOFailure
from services.github_client import RemoteEntry
from utils.async_helpers import DEFAULT_LIMIT, run_with_limit

__all__ = [
    "ALLOWED_EXTENSIONS",
    "ResolvedFile",
    "is_eligible",
    "normalize_root",
    "resolve_remote_files",
    "walk_files",
    "materialize",
    "prune",
]

logger = logging.getLogger("docmirror.mirror")

# Shared by resolution, pruning and indexing: a suffix that is never
# downloaded is never deleted either.
ALLOWED_EXTENSIONS = frozenset({".md", ".mdx", ".txt", ".rst"})


@dataclass(frozen=True)
class ResolvedFile:
    remote_path: str
    relative_path: str


def is_eligible(path: str) -> bool:
    return posixpath.splitext(path)[1] in ALLOWED_EXTENSIONS


def normalize_root(path: str) -> str:
    return path.rstrip("/")


def resolve_remote_files(entries: Iterable[RemoteEntry], root: str) -> List[ResolvedFile]:
    """Files under ``root`` that should exist locally, keyed by mirror-relative path."""
    prefix = normalize_root(root) + "/"
    resolved: List[ResolvedFile] = []
    for entry in entries:
        if entry.kind != "file" or not entry.path.startswith(prefix):
            continue
        if not is_eligible(entry.path):
            continue
        resolved.append(ResolvedFile(entry.path, entry.path[len(prefix):]))
    return resolved


def walk_files(root: Path) -> List[str]:
    """All regular files below ``root`` as sorted POSIX relative paths ([] if absent)."""
    root = Path(root)
    found: List[str] = []

    def _walk(current: Path, rel: str) -> None:
        with os.scandir(current) as it:
            for entry in it:
                child = f"{rel}/{entry.name}" if rel else entry.name
                if entry.is_dir(follow_symlinks=False):
                    _walk(Path(entry.path), child)
                elif entry.is_file(follow_symlinks=False):
                    found.append(child)

    try:
        _walk(root, "")
    except FileNotFoundError:
        if root.exists():
            raise LocalIOFailure(f"Mirror changed while scanning {root}")
        return []
    except OSError as exc:
        raise LocalIOFailure(f"Cannot scan {root}: {exc}") from exc
    return sorted(found)


def _target_for(local_root: Path, relative_path: str) -> Path:
    parts = relative_path.split("/")
    if relative_path.startswith("/") or any(p in ("", ".", "..") for p in parts):
        raise LocalIOFailure(f"Refusing to write outside the mirror: {relative_path!r}")
    return local_root.joinpath(*parts)


def _write_file(target: Path, content: str) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as exc:
        raise LocalIOFailure(f"Cannot write {target}: {exc}") from exc


async def materialize(
    local_root: Path,
    files: Iterable[ResolvedFile],
    fetch: Callable[[str], Awaitable[str]],
    *,
    concurrency: int = DEFAULT_LIMIT,
) -> int:
    """Download every resolved file into the mirror, overwriting unconditionally."""
    local_root = Path(local_root)

    async def _one(item: ResolvedFile) -> None:
        target = _target_for(local_root, item.relative_path)
        content = await fetch(item.remote_path)
        await asyncio.to_thread(_write_file, target, content)
        logger.debug("wrote %s", target)

    return await run_with_limit(files, concurrency, _one)


def prune(local_root: Path, expected: Set[str]) -> List[str]:
    """Delete eligible files not in ``expected``; other files are left alone."""
    local_root = Path(local_root)
    removed: List[str] = []
    for rel in walk_files(local_root):
        if not is_eligible(rel) or rel in expected:
            continue
        target = local_root.joinpath(*rel.split("/"))
        try:
            target.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            raise LocalIOFailure(f"Cannot delete {target}: {exc}") from exc
        removed.append(rel)

    if removed:
        log_event("mirror_pruned", {"root": str(local_root), "removed": removed})
    return removed
