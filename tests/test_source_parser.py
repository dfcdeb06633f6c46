import pytest

from services.source_parser import ParsedSource, is_repo_ref, parse_source


@pytest.mark.parametrize(
    "text,expected",
    [
        (
            "https://github.com/vercel/next.js/tree/canary/docs",
            ParsedSource("vercel/next.js", "canary", "docs"),
        ),
        (
            "github.com/acme/widgets/tree/main/site/content/",
            ParsedSource("acme/widgets", "main", "site/content"),
        ),
        (
            "  http://github.com/acme/widgets.git/tree/v2/docs  ",
            ParsedSource("acme/widgets", "v2", "docs"),
        ),
    ],
)
def test_parse_source_tree_urls(text, expected):
    assert parse_source(text) == expected


@pytest.mark.parametrize(
    "text",
    [
        "https://github.com/acme/widgets",
        "https://github.com/acme/widgets/blob/main/docs/a.md",
        "https://gitlab.com/acme/widgets/tree/main/docs",
        "acme/widgets",
    ],
)
def test_parse_source_rejects_other_inputs(text):
    assert parse_source(text) is None


def test_is_repo_ref():
    assert is_repo_ref("acme/widgets")
    assert is_repo_ref(" vercel/next.js ")
    assert not is_repo_ref("acme")
    assert not is_repo_ref("acme/widgets/docs")
    assert not is_repo_ref("https://github.com/acme/widgets")
