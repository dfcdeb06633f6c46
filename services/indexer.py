# ──────────────────────────────────────────────────────────────────────────────
# File: services/indexer.py
# Purpose: Compact directory index of a mirror, one line per directory.
#
# Format
#   • Root group:      |{a.md,b.md}
#   • Other groups:    |guides/setup:{intro.md,install.mdx}
#   • Groups and filenames sorted by code point; lines joined with "\n".
#   • Missing mirror -> "" (a never-synced source has no index).
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import posixpath
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List

from services.mirror import is_eligible, walk_files


def group_files(relative_paths: Iterable[str]) -> Dict[str, List[str]]:
    groups: Dict[str, List[str]] = defaultdict(list)
    for rel in relative_paths:
        if not is_eligible(rel):
            continue
        parent, filename = posixpath.split(rel)
        groups[parent].append(filename)
    return groups


def format_group(directory: str, filenames: Iterable[str]) -> str:
    listing = ",".join(sorted(filenames))
    if not directory:
        return f"|{{{listing}}}"
    return f"|{directory}:{{{listing}}}"


def build_index(mirror_root: Path) -> str:
    groups = group_files(walk_files(Path(mirror_root)))
    return "\n".join(format_group(d, groups[d]) for d in sorted(groups))
