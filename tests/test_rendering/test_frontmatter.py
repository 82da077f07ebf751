"""Tests for YAML front matter parsing."""

from __future__ import annotations

import pytest

from sitebuilder.filesystem.frontmatter import (
    RESERVED_FIELDS,
    custom_fields,
    generate_markdown_excerpt,
    parse_content_file,
    serialize_content_file,
    slug_from_path,
)


class TestReservedFields:
    def test_reserved_fields_contains_expected(self) -> None:
        assert "title" in RESERVED_FIELDS
        assert "layout" in RESERVED_FIELDS
        assert "collection" in RESERVED_FIELDS
        assert "homepage" in RESERVED_FIELDS

    def test_custom_fields(self) -> None:
        assert custom_fields({"title": "T", "layout": "page", "subtitle": "S"}) == {"subtitle": "S"}


class TestParseContentFile:
    def test_parse_basic_page(self) -> None:
        content_file = parse_content_file(
            "---\ntitle: About\ndate: 2026-02-02\ntags: [a, b]\n---\n# About\n\nText.\n",
            "content/about.md",
        )
        assert content_file.title == "About"
        assert content_file.slug == "about"
        assert content_file.frontmatter["date"] == "2026-02-02"
        assert content_file.frontmatter["tags"] == ["a", "b"]
        assert content_file.content == "# About\n\nText."

    def test_datetimes_become_iso_strings(self) -> None:
        content_file = parse_content_file(
            "---\ntitle: Post\ndate: 2026-02-02 22:21:29\n---\n", "content/post.md"
        )
        assert content_file.frontmatter["date"].startswith("2026-02-02T22:21:29")

    def test_missing_title_defaults(self) -> None:
        assert parse_content_file("No front matter.\n", "content/x.md").title == "Untitled"
        assert parse_content_file("---\ntitle: '  '\n---\n", "content/x.md").title == "Untitled"

    def test_non_string_title_is_coerced(self) -> None:
        assert parse_content_file("---\ntitle: 2026\n---\n", "content/x.md").title == "2026"

    def test_collection_and_homepage_flags(self) -> None:
        collection = parse_content_file("---\ncollection:\n  sort_by: title\n---\n", "content/b.md")
        assert collection.is_collection_page is True
        assert collection.is_homepage is False
        home = parse_content_file("---\nhomepage: true\ncollection: yes\n---\n", "content/i.md")
        assert home.is_homepage is True
        assert home.is_collection_page is False

    def test_invalid_yaml(self) -> None:
        with pytest.raises(ValueError, match="Invalid YAML"):
            parse_content_file("---\ntitle: [unclosed\n---\n", "content/x.md")


class TestSerialize:
    def test_round_trip(self) -> None:
        original = parse_content_file(
            "---\ntitle: Page\nhomepage: true\nnote: hi\n---\nBody text.\n", "content/p.md"
        )
        assert parse_content_file(serialize_content_file(original), "content/p.md") == original

    def test_none_values_are_dropped(self) -> None:
        content_file = parse_content_file("---\ntitle: T\n---\n", "content/t.md")
        content_file.frontmatter["layout"] = None
        assert "layout" not in serialize_content_file(content_file)


class TestHelpers:
    def test_slug_from_path(self) -> None:
        assert slug_from_path("content/blog/post.md") == "blog/post"

    def test_excerpt_skips_headings_code_and_images(self) -> None:
        text = "# Heading\n\n![img](a.png)\n\nFirst **bold** line.\n\n```\ncode\n```\nSecond."
        assert generate_markdown_excerpt(text) == "First **bold** line. Second."

    def test_excerpt_truncates_on_word_boundary(self) -> None:
        excerpt = generate_markdown_excerpt("word " * 100, max_length=22)
        assert excerpt == "word word word word..."
