"""
services/github_client.py
Purpose: Read-only GitHub client consumed by the sync engine (httpx, async).

Operations:
  - resolve_default_branch(repo) -> str
  - resolve_latest_commit(repo, ref) -> str
  - list_tree(repo, commit) -> list[RemoteEntry]          (recursive, one snapshot)
  - fetch_file_content(repo, commit, path) -> str         (raw.githubusercontent.com)
  - compare_revisions(repo, base, head) -> list[ChangedFile]

Errors are mapped onto services.errors: 404 -> RemoteNotFound, 429 or a 403
mentioning "rate limit" -> RemoteRateLimited, transport or redirect failures ->
RemoteUnavailable, any other non-2xx left after following redirects ->
RemoteRequestFailed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from services.errors import (
    RemoteNotFound,
    RemoteRateLimited,
    RemoteRequestFailed,
    RemoteUnavailable,
)
from services.settings import DEFAULT_HTTP_TIMEOUT

logger = logging.getLogger("docmirror.github")

GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"
UA = {"User-Agent": "docmirror"}

_KINDS = {"blob": "file", "tree": "directory"}


@dataclass(frozen=True)
class RemoteEntry:
    path: str
    kind: str  # "file" | "directory" | "other"


@dataclass(frozen=True)
class ChangedFile:
    path: str
    status: str


def parse_repo(repo: str) -> Tuple[str, str]:
    owner, _, name = repo.partition("/")
    if not owner or not name or "/" in name:
        raise RemoteNotFound(f"Invalid repository reference '{repo}' (expected owner/name)")
    return owner, name


class GitHubClient:
    """Thin async wrapper over the GitHub REST API and raw content host."""

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        api_base: str = GITHUB_API,
        raw_base: str = GITHUB_RAW,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._raw_base = raw_base.rstrip("/")
        self._http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers=UA,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self, raw: bool = False) -> Dict[str, str]:
        headers = {} if raw else {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get(self, url: str, *, params: Optional[Dict[str, Any]] = None, raw: bool = False) -> httpx.Response:
        try:
            r = await self._http.get(url, headers=self._headers(raw), params=params)
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"{type(e).__name__} while requesting {url}: {e}") from e

        if r.is_success:
            return r
        if r.status_code == 404:
            raise RemoteNotFound(f"Not found: {url}")
        if r.status_code == 429 or (r.status_code == 403 and "rate limit" in r.text.lower()):
            raise RemoteRateLimited("GitHub API rate limit exceeded.")
        raise RemoteRequestFailed(
            f"GitHub request failed: {r.status_code} {r.reason_phrase} ({url})",
            status=r.status_code,
        )

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        r = await self._get(f"{self._api_base}{path}", params=params)
        try:
            return r.json()
        except ValueError as e:
            raise RemoteRequestFailed(f"GitHub returned invalid JSON for {path}", status=r.status_code) from e

    async def resolve_default_branch(self, repo: str) -> str:
        owner, name = parse_repo(repo)
        data = await self._get_json(f"/repos/{owner}/{name}")
        branch = data.get("default_branch") if isinstance(data, dict) else None
        if not branch:
            raise RemoteRequestFailed(f"Unexpected repository payload for {repo}", status=200)
        return branch

    async def resolve_latest_commit(self, repo: str, ref: str) -> str:
        owner, name = parse_repo(repo)
        data = await self._get_json(f"/repos/{owner}/{name}/commits", params={"sha": ref, "per_page": 1})
        if not isinstance(data, list):
            raise RemoteRequestFailed(f"Unexpected commit listing for {repo}@{ref}", status=200)
        if not data:
            raise RemoteNotFound(f"No commits found for {repo} on {ref}")
        return data[0]["sha"]

    async def list_tree(self, repo: str, commit: str) -> List[RemoteEntry]:
        owner, name = parse_repo(repo)
        data = await self._get_json(f"/repos/{owner}/{name}/git/trees/{commit}", params={"recursive": 1})
        if data.get("truncated"):
            logger.warning("tree listing for %s@%s is truncated; mirror may be incomplete", repo, commit[:7])
        return [
            RemoteEntry(path=e.get("path") or "", kind=_KINDS.get(e.get("type") or "", "other"))
            for e in data.get("tree") or []
        ]

    async def fetch_file_content(self, repo: str, commit: str, path: str) -> str:
        owner, name = parse_repo(repo)
        url = f"{self._raw_base}/{owner}/{name}/{commit}/{quote(path)}"
        r = await self._get(url, raw=True)
        return r.text

    async def compare_revisions(self, repo: str, base: str, head: str) -> List[ChangedFile]:
        owner, name = parse_repo(repo)
        data = await self._get_json(f"/repos/{owner}/{name}/compare/{base}...{quote(head, safe='')}")
        return [ChangedFile(path=f["filename"], status=f["status"]) for f in data.get("files") or []]
