# ──────────────────────────────────────────────────────────────────────────────
# File: services/context_injector.py
# Purpose: Build a source's marker-delimited index block and upsert it into the
#          shared agents document without touching any other content.
#
# Guarantees
#   • Markers are literal strings derived from the source name; located with
#     plain substring search, never regex.
#   • Re-injecting the same block leaves the document byte-identical.
#   • Only the span between one source's markers is ever replaced.
#   • The storage directory ignore rule is appended at most once.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

from core.logging import log_event
from services.errors import BlockMarkerMismatch, LocalIOFailure
from services.settings import STORAGE_DIRNAME

if TYPE_CHECKING:  # pragma: no cover
    from services.config import DocSource

__all__ = [
    "IGNORE_ENTRY",
    "marker_base",
    "markers_for",
    "display_name",
    "build_block",
    "upsert_block",
    "inject_block",
    "ensure_ignore_entry",
]

logger = logging.getLogger("docmirror.inject")

IGNORE_ENTRY = f"{STORAGE_DIRNAME}/"
IGNORE_COMMENT = "# docmirror - downloaded docs"

_MARKER_SEPARATORS = re.compile(r"[ _]+")
_DISPLAY_SEPARATORS = re.compile(r"[ _-]+")


def marker_base(name: str) -> str:
    """'my docs' -> 'MY-DOCS'."""
    return _MARKER_SEPARATORS.sub("-", name).upper()


def markers_for(name: str) -> Tuple[str, str]:
    base = marker_base(name)
    return f"<!-- {base}-Docs-START -->", f"<!-- {base}-Docs-END -->"


def display_name(name: str) -> str:
    return " ".join(part.upper() for part in _DISPLAY_SEPARATORS.sub(" ", name).split())


def build_block(source: "DocSource", index_text: str) -> str:
    start, end = markers_for(source.name)
    label = display_name(source.name)
    lines = [
        start,
        f"[{label} Docs Index]|root: {source.local}",
        f"|IMPORTANT: Prefer retrieval-led reasoning over pre-training-led reasoning for {label} tasks.",
    ]
    if index_text.strip():
        lines.append(index_text)
    lines.append(end)
    return "\n".join(lines)


def _locate(document: str, start: str, end: str) -> Optional[Tuple[int, int]]:
    begin = document.find(start)
    if begin < 0:
        return None
    finish = document.find(end, begin + len(start))
    if finish < 0:
        raise BlockMarkerMismatch(
            f"Found '{start}' without a following '{end}'",
            hint="Remove the stray start marker or restore its end marker.",
        )
    return begin, finish + len(end)


def upsert_block(document: str, block: str, start: str, end: str) -> str:
    """Pure upsert: replace the existing span or append after a blank line."""
    span = _locate(document, start, end)
    if span is not None:
        begin, finish = span
        return document[:begin] + block + document[finish:]
    if not document.strip():
        return block + "\n"
    return document.rstrip() + "\n\n" + block + "\n"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as exc:
        raise LocalIOFailure(f"Cannot read {path}: {exc}") from exc


def _write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as exc:
        raise LocalIOFailure(f"Cannot write {path}: {exc}") from exc


def ensure_ignore_entry(project_root: Path, entry: str = IGNORE_ENTRY) -> bool:
    """Append the storage ignore rule to <root>/.gitignore; True when added."""
    gitignore = Path(project_root) / ".gitignore"
    content = _read_text(gitignore)
    if any(line.strip() == entry for line in content.splitlines()):
        return False

    addition = f"{IGNORE_COMMENT}\n{entry}\n"
    if content.strip():
        updated = content.rstrip() + "\n\n" + addition
    else:
        updated = addition
    _write_text(gitignore, updated)
    log_event("ignore_rule_added", {"path": str(gitignore), "entry": entry})
    return True


def inject_block(
    document_path: Path,
    source: "DocSource",
    index_text: str,
    *,
    project_root: Path,
) -> None:
    document_path = Path(document_path)
    start, end = markers_for(source.name)
    block = build_block(source, index_text)

    current = _read_text(document_path)
    updated = upsert_block(current, block, start, end)
    if updated != current:
        _write_text(document_path, updated)
        logger.debug("wrote block for %s into %s", source.name, document_path)
    log_event(
        "block_injected",
        {"source": source.name, "document": str(document_path), "changed": updated != current},
    )
    ensure_ignore_entry(project_root)
