"""Tests for live URLs, export paths and relative links."""

from __future__ import annotations

import pytest

from sitebuilder.services.url_service import (
    get_live_url,
    get_relative_asset_prefix,
    get_relative_path,
    get_url_for_node,
)


class TestUrlForNode:
    @pytest.mark.parametrize(
        ("path", "is_homepage", "page", "expected"),
        [
            ("content/index.md", True, None, "index.html"),
            ("content/about.md", False, None, "about/index.html"),
            ("content/about/team.md", False, None, "about/team/index.html"),
            ("content/blog.md", False, 1, "blog/index.html"),
            ("content/blog.md", False, 2, "blog/page/2/index.html"),
            ("content/index.md", True, 3, "page/3/index.html"),
        ],
    )
    def test_export_paths(self, path: str, is_homepage: bool, page: int | None, expected: str) -> None:
        assert get_url_for_node(path, True, is_homepage, page) == expected

    @pytest.mark.parametrize(
        ("path", "is_homepage", "page", "expected"),
        [
            ("content/index.md", True, None, ""),
            ("content/about.md", False, None, "about"),
            ("content/docs/index.md", False, None, "docs"),
            ("content/blog.md", False, 2, "blog?page=2"),
            ("content/index.md", True, 2, "?page=2"),
        ],
    )
    def test_live_segments(self, path: str, is_homepage: bool, page: int | None, expected: str) -> None:
        assert get_url_for_node(path, False, is_homepage, page) == expected


class TestRelativeLinks:
    def test_between_nested_pages(self) -> None:
        assert get_relative_path("blog/post/index.html", "about/index.html") == "../../about/index.html"

    def test_from_root(self) -> None:
        assert get_relative_path("index.html", "about/index.html") == "about/index.html"

    def test_to_root(self) -> None:
        assert get_relative_path("about/index.html", "index.html") == "../index.html"

    def test_asset_prefix(self) -> None:
        assert get_relative_asset_prefix("index.html") == ""
        assert get_relative_asset_prefix("blog/page/2/index.html") == "../../../"


class TestLiveUrl:
    def test_homepage(self) -> None:
        assert get_live_url("", "") == "/"
        assert get_live_url("/sites/demo/view/", "") == "/sites/demo/view"

    def test_segments(self) -> None:
        assert get_live_url("", "about") == "/about"
        assert get_live_url("/preview", "blog?page=2") == "/preview/blog?page=2"

    def test_query_only(self) -> None:
        assert get_live_url("/preview", "?page=2") == "/preview/?page=2"
