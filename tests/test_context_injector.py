# File: test_context_injector.py
# Directory: tests
# Purpose: Marker derivation, block layout, idempotent upsert, isolation between
#          sources, and the .gitignore rule.

import pytest

from services.config import DocSource, default_local_path
from services.context_injector import (
    IGNORE_ENTRY,
    build_block,
    display_name,
    ensure_ignore_entry,
    inject_block,
    markers_for,
)
from services.errors import BlockMarkerMismatch


def _source(name):
    return DocSource(name=name, repo="acme/widgets", path="docs", branch="main", local=default_local_path(name))


def test_markers_for_normalizes_separators_and_case():
    assert markers_for("my docs") == ("<!-- MY-DOCS-Docs-START -->", "<!-- MY-DOCS-Docs-END -->")
    assert markers_for("next_js") == ("<!-- NEXT-JS-Docs-START -->", "<!-- NEXT-JS-Docs-END -->")


def test_display_name_collapses_separators():
    assert display_name(" next_js-app  docs ") == "NEXT JS APP DOCS"


def test_build_block_layout():
    block = build_block(_source("my docs"), "|{a.md}")
    assert block.splitlines() == [
        "<!-- MY-DOCS-Docs-START -->",
        "[MY DOCS Docs Index]|root: ./.docmirror/my docs",
        "|IMPORTANT: Prefer retrieval-led reasoning over pre-training-led reasoning for MY DOCS tasks.",
        "|{a.md}",
        "<!-- MY-DOCS-Docs-END -->",
    ]


def test_build_block_omits_blank_index():
    assert len(build_block(_source("x"), "  \n").splitlines()) == 4


def test_inject_into_missing_document(project_root):
    doc = project_root / "nested" / "AGENTS.md"
    src = _source("alpha")

    inject_block(doc, src, "|{a.md}", project_root=project_root)

    assert doc.read_text() == build_block(src, "|{a.md}") + "\n"


def test_inject_appends_after_blank_line_and_is_idempotent(project_root):
    doc = project_root / "AGENTS.md"
    doc.write_text("# Agents\n\nBe nice.\n\n\n")
    src = _source("alpha")

    inject_block(doc, src, "|{a.md}", project_root=project_root)
    first = doc.read_bytes()
    inject_block(doc, src, "|{a.md}", project_root=project_root)

    assert doc.read_bytes() == first
    assert first.decode() == "# Agents\n\nBe nice.\n\n" + build_block(src, "|{a.md}") + "\n"


def test_inject_replaces_only_own_block(project_root):
    doc = project_root / "AGENTS.md"
    a, b = _source("alpha"), _source("beta")
    inject_block(doc, b, "|{b1.md}", project_root=project_root)
    doc.write_text("intro\n\n" + doc.read_text() + "\ntrailing notes\n")
    inject_block(doc, a, "|{a1.md}", project_root=project_root)
    b_block = build_block(b, "|{b1.md}")

    inject_block(doc, a, "|{a1.md,a2.md}", project_root=project_root)

    text = doc.read_text()
    assert b_block in text
    assert build_block(a, "|{a1.md,a2.md}") in text
    assert "|{a1.md}\n" not in text
    assert text.startswith("intro\n\n")
    assert "trailing notes" in text
    assert text.count("ALPHA-Docs-START") == 1


def test_inject_replaces_block_in_middle_of_document(project_root):
    doc = project_root / "AGENTS.md"
    src = _source("alpha")
    start, end = markers_for("alpha")
    doc.write_text(f"before\n{start}\nold stuff\n{end}\nafter\n")

    inject_block(doc, src, "", project_root=project_root)

    assert doc.read_text() == "before\n" + build_block(src, "") + "\nafter\n"


def test_inject_rejects_unterminated_block(project_root):
    doc = project_root / "AGENTS.md"
    start, _ = markers_for("alpha")
    original = f"{start}\nno end marker here\n"
    doc.write_text(original)

    with pytest.raises(BlockMarkerMismatch):
        inject_block(doc, _source("alpha"), "|{a.md}", project_root=project_root)
    assert doc.read_text() == original


def test_ensure_ignore_entry_creates_and_is_idempotent(project_root):
    assert ensure_ignore_entry(project_root) is True
    assert ensure_ignore_entry(project_root) is False
    assert (project_root / ".gitignore").read_text() == f"# docmirror - downloaded docs\n{IGNORE_ENTRY}\n"


def test_ensure_ignore_entry_preserves_existing_rules(project_root):
    gitignore = project_root / ".gitignore"
    gitignore.write_text("node_modules/\n*.log")

    ensure_ignore_entry(project_root)

    assert gitignore.read_text() == f"node_modules/\n*.log\n\n# docmirror - downloaded docs\n{IGNORE_ENTRY}\n"


def test_ensure_ignore_entry_matches_exact_line_only(project_root):
    gitignore = project_root / ".gitignore"
    gitignore.write_text("# .docmirror/ is mentioned in a comment\nbuild/.docmirror/\n")

    assert ensure_ignore_entry(project_root) is True
    assert gitignore.read_text().splitlines()[-1] == IGNORE_ENTRY


def test_inject_adds_gitignore_rule(project_root):
    inject_block(project_root / "AGENTS.md", _source("alpha"), "", project_root=project_root)
    assert IGNORE_ENTRY in (project_root / ".gitignore").read_text().splitlines()
