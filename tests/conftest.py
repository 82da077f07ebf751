"""Shared test fixtures for the site builder."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from sitebuilder.config import Settings
from sitebuilder.filesystem.frontmatter import parse_content_file
from sitebuilder.filesystem.toml_manager import parse_manifest_text
from sitebuilder.main import create_app, init_app_state
from sitebuilder.models.site import SiteModel

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

SITE_ID = "demo"

MANIFEST_TOML = """\
[site]
title = "Demo Site"
description = "A site for tests"
author = "Tester"
base_url = "https://example.com"

[theme]
name = "default"

[theme.config]
primary_color = "#ff0000"

[[structure]]
path = "content/index.md"
title = "Home"
nav_order = 0

[[structure]]
path = "content/about.md"
title = "About"
menu_title = "About us"
nav_order = 1

[[structure.children]]
path = "content/about/team.md"
title = "Team"
nav_order = 0

[[structure]]
path = "content/blog.md"
title = "Blog"
nav_order = 2

[[structure.children]]
path = "content/blog/first.md"
title = "First"
nav_order = 0

[[structure.children]]
path = "content/blog/second.md"
title = "Second"
nav_order = 1

[[structure.children]]
path = "content/blog/third.md"
title = "Third"
nav_order = 2

[[structure]]
path = "content/hidden.md"
title = "Hidden"
"""

CONTENT_FILES: dict[str, str] = {
    "content/index.md": "---\ntitle: Home\nhomepage: true\n---\nWelcome to the **demo**.\n",
    "content/about.md": "---\ntitle: About\ndescription: About this site\n---\nAbout text.\n",
    "content/about/team.md": "---\ntitle: Team\n---\nThe team.\n",
    "content/blog.md": (
        "---\ntitle: Blog\ncollection:\n  sort_by: date\n  sort_order: desc\n"
        "  items_per_page: 2\n---\nLatest posts.\n"
    ),
    "content/blog/first.md": "---\ntitle: First\ndate: '2026-01-01'\n---\nFirst post.\n",
    "content/blog/second.md": "---\ntitle: Second\ndate: '2026-02-01'\n---\nSecond post.\n",
    "content/blog/third.md": "---\ntitle: Third\ndate: '2026-03-01'\n---\nThird post.\n",
    "content/hidden.md": "---\ntitle: Hidden\n---\nNot in the menu.\n",
}


def build_site_model(
    manifest_toml: str = MANIFEST_TOML,
    content_files: dict[str, str] | None = None,
    site_id: str = SITE_ID,
) -> SiteModel:
    """In-memory site model from manifest text and raw content files."""
    files = CONTENT_FILES if content_files is None else content_files
    return SiteModel(
        manifest=parse_manifest_text(manifest_toml, site_id),
        content_files={path: parse_content_file(raw, path) for path, raw in files.items()},
    )


def write_site_dir(
    sites_dir: Path,
    manifest_toml: str = MANIFEST_TOML,
    content_files: dict[str, str] | None = None,
    site_id: str = SITE_ID,
) -> Path:
    """Write a site directory and return it."""
    site_dir = sites_dir / site_id
    site_dir.mkdir(parents=True, exist_ok=True)
    (site_dir / "manifest.toml").write_text(manifest_toml, encoding="utf-8")
    files = CONTENT_FILES if content_files is None else content_files
    for rel_path, raw in files.items():
        file_path = site_dir / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(raw, encoding="utf-8")
    return site_dir


@pytest.fixture
def site() -> SiteModel:
    """The demo site, in memory."""
    return build_site_model()


@pytest.fixture
def sites_dir(tmp_path: Path) -> Path:
    """A sites directory holding the demo site."""
    root = tmp_path / "sites"
    write_site_dir(root)
    return root


@pytest.fixture
def test_settings(sites_dir: Path) -> Settings:
    """Create test settings pointing at the temporary sites directory."""
    return Settings(
        _env_file=None,
        debug=True,
        sites_dir=sites_dir,
    )


@asynccontextmanager
async def create_test_client(settings: Settings) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with initialized app state.

    ASGITransport does not run the lifespan, so the state it would attach is
    attached here.
    """
    app = create_app(settings)
    init_app_state(app, settings)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def client(test_settings: Settings) -> AsyncGenerator[AsyncClient]:
    async with create_test_client(test_settings) as ac:
        yield ac
