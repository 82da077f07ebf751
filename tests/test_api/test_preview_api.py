"""Integration tests for browsing a site under its live preview root."""

from __future__ import annotations

import io
import re
from typing import TYPE_CHECKING

from PIL import Image

from tests.conftest import SITE_ID

if TYPE_CHECKING:
    from pathlib import Path

    from httpx import AsyncClient

VIEW = "/sites/demo/view"
_HREF_RE = re.compile(r'(?:href|src)="(/sites/demo/view[^"]*)"')


def _links(html: str) -> set[str]:
    return set(_HREF_RE.findall(html))


def _write_image(sites_dir: Path, rel_path: str, size: tuple[int, int]) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "green").save(buffer, format="PNG")
    file_path = sites_dir / SITE_ID / rel_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(buffer.getvalue())
    return buffer.getvalue()


class TestPreviewPages:
    async def test_homepage(self, client: AsyncClient) -> None:
        resp = await client.get(VIEW)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "Welcome to the <strong>demo</strong>." in resp.text

    async def test_rendered_links_resolve(self, client: AsyncClient) -> None:
        home = await client.get(VIEW)
        links = _links(home.text)
        assert f"{VIEW}/blog" in links
        assert f"{VIEW}/themes/default/style.css" in links
        for link in sorted(links):
            resp = await client.get(link)
            assert resp.status_code == 200, link

    async def test_pager_link(self, client: AsyncClient) -> None:
        blog = await client.get(f"{VIEW}/blog")
        assert f'href="{VIEW}/blog?page=2"' in blog.text
        resp = await client.get(f"{VIEW}/blog", params={"page": 2})
        assert resp.status_code == 200
        assert "First" in resp.text
        assert "Third" not in resp.text

    async def test_nested_page(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/about/team")
        assert resp.status_code == 200
        assert "The team." in resp.text

    async def test_unknown_page(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/nope")
        assert resp.status_code == 404

    async def test_page_past_the_end(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/blog", params={"page": 9})
        assert resp.status_code == 404

    async def test_invalid_page_number(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/blog", params={"page": 0})
        assert resp.status_code == 422

    async def test_unknown_site(self, client: AsyncClient) -> None:
        resp = await client.get("/sites/missing/view")
        assert resp.status_code == 404


class TestPreviewFiles:
    async def test_theme_stylesheet(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/themes/default/style.css")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/css")

    async def test_unknown_theme_file(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/themes/default/missing.css")
        assert resp.status_code == 404

    async def test_stored_asset(self, client: AsyncClient, sites_dir: Path) -> None:
        data = _write_image(sites_dir, "assets/images/team.png", (100, 50))
        resp = await client.get(f"{VIEW}/assets/images/team.png")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content == data

    async def test_resized_variant_is_generated(self, client: AsyncClient, sites_dir: Path) -> None:
        _write_image(sites_dir, "assets/images/team.png", (100, 50))
        resp = await client.get(f"{VIEW}/assets/images/team_w40_hauto_c-scale_g-center.png")
        assert resp.status_code == 200
        with Image.open(io.BytesIO(resp.content)) as img:
            assert img.size == (40, 20)

    async def test_featured_image_link_resolves(self, client: AsyncClient, sites_dir: Path) -> None:
        _write_image(sites_dir, "assets/images/team.png", (100, 50))
        (sites_dir / SITE_ID / "content" / "about.md").write_text(
            "---\ntitle: About\nfeatured_image:\n  service_id: local\n"
            "  src: assets/images/team.png\n---\nAbout text.\n",
            encoding="utf-8",
        )
        about = await client.get(f"{VIEW}/about")
        src = f"{VIEW}/assets/images/team_w1200_hauto_c-scale_g-center.png"
        assert f'src="{src}"' in about.text
        resp = await client.get(src)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"

    async def test_missing_asset(self, client: AsyncClient) -> None:
        resp = await client.get(f"{VIEW}/assets/images/none_w40_hauto_c-scale_g-center.png")
        assert resp.status_code == 404
