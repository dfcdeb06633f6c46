# File: services/source_parser.py
# Purpose: Recognize the inputs `docmirror add` accepts: GitHub tree URLs and
#          bare owner/repo references.

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")
URL_PATTERN = re.compile(r"^(?:https?://)?github\.com/([\w.-]+)/([\w.-]+)/tree/([^/]+)/(.+?)/?$")


@dataclass(frozen=True)
class ParsedSource:
    repo: str
    branch: str
    path: str


def is_repo_ref(text: str) -> bool:
    return bool(REPO_PATTERN.match(text.strip()))


def parse_source(text: str) -> Optional[ParsedSource]:
    """github.com/<owner>/<repo>/tree/<branch>/<path> -> ParsedSource, else None."""
    match = URL_PATTERN.match(text.strip())
    if not match:
        return None
    owner, repo_name, branch, raw_path = match.groups()
    repo_name = re.sub(r"\.git$", "", repo_name)
    path = raw_path.rstrip("/")
    if not repo_name or not path:
        return None
    return ParsedSource(repo=f"{owner}/{repo_name}", branch=branch, path=path)
