"""Site read endpoints: manifest, resolution, rendering, navigation, theme."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from sitebuilder.api.deps import get_asset_store, get_renderer, get_settings, get_site
from sitebuilder.config import Settings
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.models.render import NotFound, RenderOptions
from sitebuilder.models.site import SiteModel
from sitebuilder.rendering.render_service import Renderer
from sitebuilder.schemas.site import (
    NavLinkSchema,
    ResolveResponse,
    SiteResponse,
    ThemeDataResponse,
)
from sitebuilder.services.navigation_service import generate_nav_links
from sitebuilder.services.page_resolver import normalize_path, resolve
from sitebuilder.services.theme_service import get_merged_theme_data_for_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sites", tags=["sites"])


def _render_options(settings: Settings, site_id: str, export: bool) -> RenderOptions:
    if export:
        return RenderOptions(is_export=True)
    return RenderOptions(is_export=False, site_root_path=settings.preview_root_for(site_id))


@router.get("/{site_id}", response_model=SiteResponse)
async def get_site_endpoint(
    site: Annotated[SiteModel, Depends(get_site)],
) -> SiteResponse:
    """Get the site manifest and structure tree."""
    return SiteResponse.from_site(site)


@router.get("/{site_id}/resolve", response_model=ResolveResponse)
async def resolve_endpoint(
    site: Annotated[SiteModel, Depends(get_site)],
    settings: Annotated[Settings, Depends(get_settings)],
    path: str = "",
    page: Annotated[int | None, Query(ge=1)] = None,
) -> ResolveResponse:
    """Resolve a site path to its content, layout and listing page."""
    result = resolve(
        path,
        site,
        page=page,
        options=_render_options(settings, site.site_id, export=False),
        default_page_layout=settings.default_page_layout,
        default_collection_layout=settings.default_collection_layout,
    )
    if isinstance(result, NotFound):
        return ResolveResponse(found=False, reason=result.reason)
    return ResolveResponse.from_resolution(result)


@router.get("/{site_id}/render", response_class=HTMLResponse)
async def render_endpoint(
    site: Annotated[SiteModel, Depends(get_site)],
    settings: Annotated[Settings, Depends(get_settings)],
    renderer: Annotated[Renderer, Depends(get_renderer)],
    path: str = "",
    page: Annotated[int | None, Query(ge=1)] = None,
    export: bool = False,
) -> HTMLResponse:
    """Render a page to a complete HTML document (404 document when not found)."""
    options = _render_options(settings, site.site_id, export)
    result = resolve(
        path,
        site,
        page=page,
        options=options,
        default_page_layout=settings.default_page_layout,
        default_collection_layout=settings.default_collection_layout,
    )
    html = await renderer.render(site, result, options)
    if isinstance(result, NotFound):
        logger.info("Render of /%s on %s: %s", normalize_path(path), site.site_id, result.reason)
        return HTMLResponse(html, status_code=404)
    return HTMLResponse(html)


@router.get("/{site_id}/nav", response_model=list[NavLinkSchema])
async def nav_endpoint(
    site: Annotated[SiteModel, Depends(get_site)],
    settings: Annotated[Settings, Depends(get_settings)],
    current: str = "",
    export: bool = False,
) -> list[NavLinkSchema]:
    """Navigation links as seen from the page at content path ``current``."""
    options = _render_options(settings, site.site_id, export)
    links = generate_nav_links(site, current, options)
    return [NavLinkSchema.from_item(link) for link in links]


@router.get("/{site_id}/theme", response_model=ThemeDataResponse)
async def theme_endpoint(
    site: Annotated[SiteModel, Depends(get_site)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
) -> ThemeDataResponse:
    """Saved theme config merged over the appearance schema defaults."""
    theme = site.manifest.theme
    merged = await get_merged_theme_data_for_form(theme.name, theme.config, site, asset_store)
    return ThemeDataResponse(
        name=theme.name,
        initial_config=merged.initial_config,
        appearance_schema=merged.schema,
    )
