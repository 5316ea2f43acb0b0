"""Tests for frontmatter splitting."""

import pytest

from docs_index.core.errors import FrontMatterError
from docs_index.ingest.frontmatter import describe, split_front_matter


def test_header_is_stripped_from_body() -> None:
    metadata, body = split_front_matter('---\ndescription: "x"\n---\nHello')
    assert metadata == {"description": "x"}
    assert body == "Hello"


def test_text_without_header_is_untouched() -> None:
    text = "# Title\n\nNo header here.\n---\nnot: frontmatter\n"
    assert split_front_matter(text) == ({}, text)


def test_metadata_keeps_declaration_order() -> None:
    metadata, _ = split_front_matter("---\nzeta: 1\nalpha: two\ntags: [a, b]\n---\nbody\n")
    assert list(metadata) == ["zeta", "alpha", "tags"]
    assert metadata["tags"] == ["a", "b"]


def test_empty_header() -> None:
    assert split_front_matter("---\n---\nbody") == ({}, "body")


def test_non_mapping_header_is_treated_as_body() -> None:
    text = "---\njust a line\n---\nrest"
    assert split_front_matter(text) == ({}, text)


def test_invalid_yaml_raises() -> None:
    with pytest.raises(FrontMatterError):
        split_front_matter("---\nkey: [unclosed\n---\nbody")


def test_describe_prefers_description_over_title() -> None:
    assert describe({"title": "T", "description": "D"}) == "D"
    assert describe({"title": "T"}) == "T"
    assert describe({}) is None
