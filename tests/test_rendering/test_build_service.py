"""Tests for the static export of a whole site."""

from __future__ import annotations

import io
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
from PIL import Image

from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.models.site import SiteModel
from sitebuilder.models.structure import StructureNode
from sitebuilder.rendering.build_service import build_site, write_site
from tests.conftest import SITE_ID

if TYPE_CHECKING:
    from pathlib import Path

EXPECTED_PAGES = {
    "index.html",
    "about/index.html",
    "about/team/index.html",
    "blog/index.html",
    "blog/page/2/index.html",
    "blog/first/index.html",
    "blog/second/index.html",
    "blog/third/index.html",
    "hidden/index.html",
}
FEEDS = {"rss.xml", "sitemap.xml"}
ABOUT_WITH_IMAGE = (
    "---\ntitle: About\nfeatured_image:\n  service_id: local\n"
    "  src: assets/images/team.png\n  alt: The team\n---\nAbout text.\n"
)
TEAM_IMAGE = "assets/images/team.png"
TEAM_VARIANT = "assets/images/team_w1200_hauto_c-scale_g-center.png"


def _png(size: tuple[int, int]) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "blue").save(buffer, format="PNG")
    return buffer.getvalue()


async def _site_with_image(sites_dir: Path, image: bytes | None) -> tuple[SiteModel, SiteStore]:
    site_dir = sites_dir / SITE_ID
    if image is not None:
        (site_dir / "assets" / "images").mkdir(parents=True)
        (site_dir / TEAM_IMAGE).write_bytes(image)
    (site_dir / "content" / "about.md").write_text(ABOUT_WITH_IMAGE, encoding="utf-8")
    store = SiteStore(sites_dir)
    return await store.get_site(SITE_ID), store


class TestBuildSite:
    async def test_every_page_and_listing_page(self, site: SiteModel) -> None:
        output = await build_site(site)
        assert set(output) == EXPECTED_PAGES | FEEDS | {"themes/default/style.css"}

    async def test_pages_link_relatively(self, site: SiteModel) -> None:
        output = await build_site(site)
        assert 'href="../../index.html"' in output["blog/page/2/index.html"]
        assert 'href="themes/default/style.css"' in output["index.html"]
        assert 'href="../themes/default/style.css"' in output["about/index.html"]

    async def test_nodes_without_content_are_skipped(self, site: SiteModel) -> None:
        manifest = replace(
            site.manifest,
            structure=(*site.manifest.structure, StructureNode(path="content/ghost.md", title="Ghost")),
        )
        output = await build_site(replace(site, manifest=manifest))
        assert "ghost/index.html" not in output

    async def test_configured_default_layouts(self, site: SiteModel) -> None:
        custom = replace(site, layout_files={"layouts/plain/index.html": "PLAIN {{ page.title }}"})
        output = await build_site(custom, default_page_layout="plain")
        assert "PLAIN About" in output["about/index.html"]
        assert "PLAIN" not in output["blog/index.html"]

    async def test_feeds_need_a_base_url(self, site: SiteModel) -> None:
        output = await build_site(replace(site, manifest=replace(site.manifest, base_url="")))
        assert not FEEDS & set(output)

    async def test_rss_lists_dated_posts(self, site: SiteModel) -> None:
        rss = (await build_site(site))["rss.xml"]
        assert isinstance(rss, str)
        assert rss.index("<title>Third</title>") < rss.index("<title>First</title>")
        assert "<link>https://example.com/blog/third</link>" in rss
        assert "<title>Blog</title>" not in rss


class TestExportImages:
    async def test_original_and_variant_are_exported(self, sites_dir: Path) -> None:
        site, store = await _site_with_image(sites_dir, _png((300, 200)))
        output = await build_site(site, site_store=store)

        assert 'src="../assets/images/team_w1200_hauto_c-scale_g-center.png"' in output["about/index.html"]
        assert output[TEAM_IMAGE] == (sites_dir / SITE_ID / TEAM_IMAGE).read_bytes()
        variant = output[TEAM_VARIANT]
        assert isinstance(variant, bytes)
        with Image.open(io.BytesIO(variant)) as img:
            assert img.size == (1200, 800)

    async def test_no_images_without_store(self, sites_dir: Path) -> None:
        site, _ = await _site_with_image(sites_dir, _png((300, 200)))
        output = await build_site(site)
        assert TEAM_IMAGE not in output
        assert TEAM_VARIANT not in output

    async def test_missing_image_is_skipped(self, sites_dir: Path) -> None:
        site, store = await _site_with_image(sites_dir, None)
        output = await build_site(site, site_store=store)
        assert "about/index.html" in output
        assert not any(path.startswith("assets/") for path in output)

    async def test_unreadable_image_is_copied_without_variant(self, sites_dir: Path) -> None:
        site, store = await _site_with_image(sites_dir, b"not a png")
        output = await build_site(site, site_store=store)
        assert output[TEAM_IMAGE] == b"not a png"
        assert TEAM_VARIANT not in output


class TestWriteSite:
    async def test_writes_files(self, tmp_path: Path) -> None:
        written = await write_site({"index.html": "<p>home</p>", "a/b/index.html": "x"}, tmp_path)
        assert len(written) == 2
        assert (tmp_path / "a" / "b" / "index.html").read_text(encoding="utf-8") == "x"

    async def test_writes_binary_files(self, tmp_path: Path) -> None:
        await write_site({"assets/images/a.png": b"\x89PNG\x00"}, tmp_path)
        assert (tmp_path / "assets" / "images" / "a.png").read_bytes() == b"\x89PNG\x00"

    async def test_rejects_traversal(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Path traversal"):
            await write_site({"../escape.html": "x"}, tmp_path / "out")
