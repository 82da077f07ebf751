"""Integration tests for the content and homepage endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from httpx import AsyncClient

BASE = "/api/sites/demo"


def _paths(structure: list[dict]) -> list[str]:
    return [node["path"] for node in structure]


class TestPutContent:
    async def test_create_top_level_page(self, client: AsyncClient, sites_dir: Path) -> None:
        resp = await client.put(
            f"{BASE}/content/contact.md",
            json={"frontmatter": {"title": "Contact"}, "content": "Write to us."},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["path"] == "content/contact.md"
        assert data["slug"] == "contact"
        assert data["title"] == "Contact"
        assert data["is_homepage"] is False
        assert (sites_dir / "demo" / "content" / "contact.md").is_file()

        site = (await client.get(BASE)).json()
        assert "content/contact.md" in _paths(site["structure"])

        page = await client.get(f"{BASE}/render", params={"path": "contact"})
        assert page.status_code == 200
        assert "Write to us." in page.text

    async def test_create_under_parent(self, client: AsyncClient) -> None:
        resp = await client.put(
            f"{BASE}/content/about/jobs.md",
            json={"frontmatter": {"title": "Jobs"}, "parent_path": "content/about.md"},
        )
        assert resp.status_code == 200
        site = (await client.get(BASE)).json()
        about = site["structure"][1]
        assert [child["path"] for child in about["children"]] == [
            "content/about/team.md",
            "content/about/jobs.md",
        ]

    async def test_update_existing(self, client: AsyncClient) -> None:
        resp = await client.put(
            f"{BASE}/content/about.md",
            json={"frontmatter": {"title": "About", "page_style": "wide"}, "content": "New."},
        )
        assert resp.status_code == 200
        assert resp.json()["frontmatter"]["page_style"] == "wide"
        page = await client.get(f"{BASE}/render", params={"path": "about"})
        assert "page-wide" in page.text

    async def test_invalid_frontmatter(self, client: AsyncClient) -> None:
        resp = await client.put(
            f"{BASE}/content/about.md",
            json={"frontmatter": {"title": "About", "page_style": "huge"}},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"].startswith("Invalid frontmatter")

    async def test_invalid_path(self, client: AsyncClient) -> None:
        resp = await client.put(
            f"{BASE}/content/notes.txt",
            json={"frontmatter": {"title": "Notes"}},
        )
        assert resp.status_code == 422


class TestDeleteContent:
    async def test_cascade(self, client: AsyncClient, sites_dir: Path) -> None:
        resp = await client.delete(f"{BASE}/content/blog.md")
        assert resp.status_code == 200
        data = resp.json()
        assert "content/blog.md" not in _paths(data["structure"])
        assert "content/blog/first.md" not in data["content_paths"]
        assert not (sites_dir / "demo" / "content" / "blog" / "first.md").exists()

    async def test_reparent(self, client: AsyncClient) -> None:
        resp = await client.delete(f"{BASE}/content/about.md", params={"policy": "reparent"})
        assert resp.status_code == 200
        paths = _paths(resp.json()["structure"])
        assert paths[:3] == ["content/index.md", "content/about/team.md", "content/blog.md"]

    async def test_unknown_policy(self, client: AsyncClient) -> None:
        resp = await client.delete(f"{BASE}/content/about.md", params={"policy": "orphan"})
        assert resp.status_code == 422

    async def test_homepage_cannot_be_deleted(self, client: AsyncClient) -> None:
        resp = await client.delete(f"{BASE}/content/index.md")
        assert resp.status_code == 422
        site = (await client.get(BASE)).json()
        assert site["homepage"] == "content/index.md"


class TestHomepage:
    async def test_set_homepage(self, client: AsyncClient) -> None:
        resp = await client.put(f"{BASE}/homepage", json={"path": "about.md"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["homepage"] == "content/about.md"

        resolved = (await client.get(f"{BASE}/resolve")).json()
        assert resolved["path"] == "content/about.md"

    async def test_nested_page_rejected(self, client: AsyncClient) -> None:
        resp = await client.put(f"{BASE}/homepage", json={"path": "content/about/team.md"})
        assert resp.status_code == 422
        assert "top-level" in resp.json()["detail"]
