"""Shared API dependencies: settings, site store, renderer."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from sitebuilder.config import Settings
from sitebuilder.exceptions import SiteNotFoundError
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.models.site import SiteModel
from sitebuilder.rendering.render_service import Renderer


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_site_store(request: Request) -> SiteStore:
    """Get the site store from app state."""
    store: SiteStore = request.app.state.site_store
    return store


def get_asset_store(request: Request) -> AssetStore:
    store: AssetStore = request.app.state.asset_store
    return store


def get_renderer(request: Request) -> Renderer:
    renderer: Renderer = request.app.state.renderer
    return renderer


async def get_site(
    site_id: str,
    store: Annotated[SiteStore, Depends(get_site_store)],
) -> SiteModel:
    """Load the site named in the path. Raises SiteNotFoundError (404)."""
    try:
        return await store.get_site(site_id)
    except ValueError as exc:
        raise SiteNotFoundError(f"Site not found: {site_id}") from exc
