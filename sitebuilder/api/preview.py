"""Live preview: browse a rendered site under its preview root.

Mounted at ``Settings.preview_root`` so every live-mode link produced by the
renderer (nav, pager, ``url_for``, theme stylesheets, images) lands here.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, Response

from sitebuilder.api.deps import get_asset_store, get_renderer, get_settings, get_site, get_site_store
from sitebuilder.config import Settings
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.models.assets import AssetKind
from sitebuilder.models.render import NotFound, RenderOptions
from sitebuilder.models.site import SiteModel
from sitebuilder.rendering.render_service import Renderer
from sitebuilder.services.image_service import make_derivative, parse_derivative_path
from sitebuilder.services.page_resolver import normalize_path, resolve

logger = logging.getLogger(__name__)

router = APIRouter(tags=["preview"])


def _media_type(path: str) -> str:
    return mimetypes.guess_type(path)[0] or "application/octet-stream"


def _not_found() -> HTMLResponse:
    return HTMLResponse("Not found", status_code=404)


async def _theme_file(site: SiteModel, rel_path: str, asset_store: AssetStore) -> Response:
    parts = rel_path.split("/", 2)
    if len(parts) != 3 or not parts[2]:
        return _not_found()
    content = await asset_store.get_asset_content(site, AssetKind.THEME, parts[1], parts[2])
    if content is None:
        return _not_found()
    return Response(content, media_type=_media_type(rel_path))


async def _site_asset(site: SiteModel, rel_path: str, store: SiteStore) -> Response:
    """A stored asset, or a resized variant generated from its source image."""
    data = await store.read_site_file(site.site_id, rel_path)
    if data is None:
        parsed = parse_derivative_path(rel_path)
        if parsed is None:
            return _not_found()
        src, transform = parsed
        source = await store.read_site_file(site.site_id, src)
        if source is None:
            return _not_found()
        data = await asyncio.to_thread(make_derivative, source, transform)
    return Response(data, media_type=_media_type(rel_path))


async def _preview(
    path: str,
    page: int | None,
    site: SiteModel,
    settings: Settings,
    renderer: Renderer,
    store: SiteStore,
    asset_store: AssetStore,
) -> Response:
    rel_path = normalize_path(path)
    if rel_path.startswith("themes/"):
        return await _theme_file(site, rel_path, asset_store)
    if rel_path.startswith("assets/"):
        return await _site_asset(site, rel_path, store)

    options = RenderOptions(is_export=False, site_root_path=settings.preview_root_for(site.site_id))
    result = resolve(
        rel_path,
        site,
        page=page,
        options=options,
        default_page_layout=settings.default_page_layout,
        default_collection_layout=settings.default_collection_layout,
    )
    html = await renderer.render(site, result, options)
    if isinstance(result, NotFound):
        logger.info("Preview of /%s on %s: %s", rel_path, site.site_id, result.reason)
        return HTMLResponse(html, status_code=404)
    return HTMLResponse(html)


@router.get("", response_class=HTMLResponse)
async def preview_home(
    site: Annotated[SiteModel, Depends(get_site)],
    settings: Annotated[Settings, Depends(get_settings)],
    renderer: Annotated[Renderer, Depends(get_renderer)],
    store: Annotated[SiteStore, Depends(get_site_store)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
    page: Annotated[int | None, Query(ge=1)] = None,
) -> Response:
    """The site's homepage (or a page of it when the homepage is a collection)."""
    return await _preview("", page, site, settings, renderer, store, asset_store)


@router.get("/{path:path}", response_class=HTMLResponse)
async def preview_path(
    path: str,
    site: Annotated[SiteModel, Depends(get_site)],
    settings: Annotated[Settings, Depends(get_settings)],
    renderer: Annotated[Renderer, Depends(get_renderer)],
    store: Annotated[SiteStore, Depends(get_site_store)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
    page: Annotated[int | None, Query(ge=1)] = None,
) -> Response:
    """A page, theme file or site asset addressed by a live-mode link."""
    return await _preview(path, page, site, settings, renderer, store, asset_store)
