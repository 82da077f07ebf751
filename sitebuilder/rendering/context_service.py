"""Template context assembly for the body and base templates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

from markupsafe import Markup

from sitebuilder.filesystem.frontmatter import generate_markdown_excerpt
from sitebuilder.models.render import CollectionConfig
from sitebuilder.rendering.markdown import render_markdown
from sitebuilder.rendering.state import RENDER_STATE
from sitebuilder.services.collection_service import parse_collection_config, sort_items
from sitebuilder.services.datetime_service import format_display_date
from sitebuilder.services.image_service import ImageRef, ImageTransformOptions
from sitebuilder.services.page_resolver import collection_items
from sitebuilder.services.structure_service import build_index
from sitebuilder.services.theme_service import generate_style_overrides
from sitebuilder.services.url_service import get_url_for_node

if TYPE_CHECKING:
    from sitebuilder.models.assets import LayoutManifest, ThemeManifest
    from sitebuilder.models.render import NavLinkItem, PageResolution
    from sitebuilder.models.site import ContentFile
    from sitebuilder.rendering.state import RenderState

logger = logging.getLogger(__name__)

# Preset names tried, in order, for the Open Graph image.
OG_IMAGE_PRESETS: tuple[str, ...] = ("og_image", "post_thumbnail", "featured")


def resolve_image_presets(
    state: RenderState,
    layout: LayoutManifest | None,
    content_file: ContentFile,
) -> dict[str, dict[str, Any]]:
    """URLs for the layout's image presets that the content file provides."""
    resolved: dict[str, dict[str, Any]] = {}
    if layout is None:
        return resolved
    for name, preset in layout.image_presets.items():
        ref = ImageRef.from_data(content_file.frontmatter.get(preset.source))
        if ref is None:
            continue
        options = ImageTransformOptions(
            width=preset.width, height=preset.height, crop=preset.crop, gravity=preset.gravity
        )
        try:
            url = state.image_service.get_display_url(
                state.site.manifest, ref, options, state.options.is_export, state.image_url_prefix
            )
        except ValueError as exc:
            logger.warning("Could not resolve image preset %r for %s: %s", name, content_file.path, exc)
            continue
        resolved[name] = {"url": url, "width": preset.width, "height": preset.height, "alt": ref.alt}
    return resolved


def item_view(
    state: RenderState,
    item: ContentFile,
    layout: LayoutManifest | None = None,
) -> dict[str, Any]:
    """Template-facing view of a collection item."""
    description = item.frontmatter.get("description")
    return {
        "path": item.path,
        "slug": item.slug,
        "title": item.title,
        "url": state.href_for(item.path),
        "date": item.frontmatter.get("date"),
        "display_date": format_display_date(item.frontmatter.get("date")),
        "description": description,
        "excerpt": description or generate_markdown_excerpt(item.content),
        "frontmatter": item.frontmatter,
        "content": item.content,
        "images": resolve_image_presets(state, layout, item),
    }


def query_collection(
    state: RenderState,
    source_collection: str,
    limit: int | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> list[dict[str, Any]]:
    """Sorted item views of the collection page whose slug is ``source_collection``."""
    site = state.site
    source = next(
        (f for f in site.content_files.values() if f.slug == source_collection and f.is_collection_page),
        None,
    )
    if source is None:
        logger.warning("query: no collection page with slug %r", source_collection)
        return []
    index = build_index(site.manifest.structure)
    config = parse_collection_config({"sort_by": sort_by, "sort_order": sort_order})
    items = sort_items(collection_items(site, index, source.path), config)
    if limit is not None and limit >= 0:
        items = items[:limit]
    return [item_view(state, item) for item in items]


def _collection_context(
    state: RenderState,
    resolution: PageResolution,
    layout: LayoutManifest | None,
) -> dict[str, Any] | None:
    listing = resolution.collection
    if listing is None:
        return None
    return {
        "entries": [item_view(state, item, layout) for item in listing.items],
        "config": listing.config,
        "options": listing.config.options,
        "pagination": listing.pagination,
    }


def _parent_config(resolution: PageResolution) -> CollectionConfig | None:
    parent = resolution.parent_collection
    if parent is None:
        return None
    return parse_collection_config(parent.frontmatter.get("collection"))


def assemble_page_context(
    state: RenderState,
    resolution: PageResolution,
    layout: LayoutManifest | None,
    nav_links: list[NavLinkItem],
) -> dict[str, Any]:
    """Context for the body template."""
    content_file = resolution.content_file
    collection = _collection_context(state, resolution, layout)
    images = resolve_image_presets(state, layout, content_file)
    return {
        "page": {
            "path": content_file.path,
            "slug": content_file.slug,
            "title": resolution.page_title,
            "url": state.href_for(content_file.path),
            "date": content_file.frontmatter.get("date"),
            "display_date": format_display_date(content_file.frontmatter.get("date")),
            "is_homepage": resolution.is_homepage,
        },
        "content_file": content_file,
        "frontmatter": content_file.frontmatter,
        "body_html": Markup(render_markdown(content_file.content)),
        "collection": collection,
        "pagination": collection["pagination"] if collection else None,
        "parent_collection": resolution.parent_collection,
        "parent_collection_config": _parent_config(resolution),
        "layout": layout,
        "images": images,
        "nav_links": nav_links,
        "options": state.options,
        RENDER_STATE: state,
    }


def canonical_url(base_url: str, export_path: str) -> str | None:
    """Absolute URL of the exported page; None when the site has no base URL."""
    if not base_url:
        return None
    canonical = urljoin(base_url.rstrip("/") + "/", export_path)
    return canonical.removesuffix("index.html")


def _manifest_image_url(state: RenderState, data: Any, width: int | None, height: int | None) -> str | None:
    ref = ImageRef.from_data(data)
    if ref is None:
        return None
    try:
        return state.image_service.get_display_url(
            state.site.manifest,
            ref,
            ImageTransformOptions(width=width, height=height),
            state.options.is_export,
            state.image_url_prefix,
        )
    except ValueError as exc:
        logger.warning("Could not resolve site image %s: %s", ref.src, exc)
        return None


def assemble_base_context(
    state: RenderState,
    resolution: PageResolution,
    theme: ThemeManifest,
    page_images: dict[str, dict[str, Any]],
    nav_links: list[NavLinkItem],
) -> dict[str, Any]:
    """Context for the theme's base template (the body is added by the caller)."""
    manifest = state.site.manifest
    theme_config = dict(manifest.theme.config)
    asset_root = state.asset_prefix if state.options.is_export else f"{state.options.site_root_path}/"
    export_path = get_url_for_node(resolution.content_file.path, True, resolution.is_homepage)
    og_image = next((page_images[name]["url"] for name in OG_IMAGE_PRESETS if name in page_images), None)

    return {
        "site": {
            "title": manifest.title,
            "description": manifest.description,
            "author": manifest.author,
            "base_url": manifest.base_url,
        },
        "theme_config": theme_config,
        "nav_links": nav_links,
        "logo_url": _manifest_image_url(state, manifest.logo, None, 32),
        "head": {
            "page_title": resolution.page_title,
            "description": resolution.content_file.frontmatter.get("description") or manifest.description,
            "canonical_url": canonical_url(manifest.base_url, export_path),
            "asset_prefix": asset_root,
            "stylesheets": [f"{asset_root}themes/{manifest.theme.name}/{path}" for path in theme.stylesheets],
            "style_overrides": Markup(generate_style_overrides(theme_config)),
            "favicon_url": _manifest_image_url(state, manifest.favicon, 32, 32),
            "og_image_url": og_image,
        },
        "options": state.options,
        RENDER_STATE: state,
    }
