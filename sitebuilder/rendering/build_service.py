"""Static export: render every page of a site into output files."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from sitebuilder.models.assets import AssetKind
from sitebuilder.models.render import NotFound, PageResolution, RenderOptions
from sitebuilder.rendering.feeds import build_rss, build_sitemap
from sitebuilder.rendering.render_service import Renderer
from sitebuilder.services.image_service import (
    LocalImageService,
    derivative_path,
    find_image_refs,
    get_active_image_service,
    make_derivative,
)
from sitebuilder.services.page_resolver import resolve
from sitebuilder.services.structure_service import flatten_tree
from sitebuilder.services.url_service import get_url_for_node

if TYPE_CHECKING:
    from pathlib import Path

    from sitebuilder.filesystem.assets import AssetStore
    from sitebuilder.filesystem.site_store import SiteStore
    from sitebuilder.models.site import SiteManifest, SiteModel
    from sitebuilder.services.image_service import ImageRef, ImageService, ImageTransformOptions

logger = logging.getLogger(__name__)


def _resolution_path(site: SiteModel, content_path: str) -> str:
    homepage = site.homepage
    if homepage is not None and homepage.path == content_path:
        return ""
    return content_path.removeprefix("content/").removesuffix(".md")


class _RecordingImageService:
    """Delegates to the site's image service and remembers local derivatives."""

    def __init__(self, inner: ImageService) -> None:
        self.inner = inner
        self.id = inner.id
        self.derivatives: dict[str, tuple[str, ImageTransformOptions]] = {}

    def get_display_url(
        self,
        manifest: SiteManifest,
        ref: ImageRef,
        options: ImageTransformOptions,
        is_export: bool,
        url_prefix: str = "",
    ) -> str:
        url = self.inner.get_display_url(manifest, ref, options, is_export, url_prefix)
        if self.id == LocalImageService.id:
            self.derivatives[derivative_path(ref.src, options)] = (ref.src, options)
        return url


async def build_site(
    site: SiteModel,
    asset_store: AssetStore | None = None,
    default_page_layout: str = "page",
    default_collection_layout: str = "listing",
    site_store: SiteStore | None = None,
) -> dict[str, str | bytes]:
    """Render the whole site in export mode.

    Returns ``{output path: content}`` covering every page in the structure
    tree, every extra page of paginated collections, the theme's
    stylesheets and, when the site has a ``base_url``, ``rss.xml`` and
    ``sitemap.xml``. With a ``site_store`` the local images the pages use
    are included as well: originals plus every resized variant. Tree nodes
    without a content file are skipped.
    """
    image_service = _RecordingImageService(get_active_image_service(site.manifest))
    renderer = Renderer(asset_store, image_service=image_service)
    options = RenderOptions(is_export=True)
    output: dict[str, str | bytes] = {}

    for item in flatten_tree(site.manifest.structure):
        if site.get_content_file(item.id) is None:
            logger.warning("Skipping %s: no content file", item.id)
            continue
        path = _resolution_path(site, item.id)
        page = 1
        while True:
            resolution = resolve(
                path,
                site,
                page=page,
                options=options,
                default_page_layout=default_page_layout,
                default_collection_layout=default_collection_layout,
            )
            if isinstance(resolution, NotFound):
                logger.warning("Skipping %s page %d: %s", item.id, page, resolution.reason)
                break
            export_path = get_url_for_node(item.id, True, resolution.is_homepage, page)
            output[export_path] = await renderer.render(site, resolution, options)
            if not _has_next_page(resolution):
                break
            page += 1

    theme_name = site.manifest.theme.name
    theme = await renderer.asset_store.get_theme_manifest(site, theme_name)
    for stylesheet in theme.stylesheets:
        content = await renderer.asset_store.get_asset_content(site, AssetKind.THEME, theme_name, stylesheet)
        if content is not None:
            output[f"themes/{theme_name}/{stylesheet}"] = content

    if site.manifest.base_url:
        output["rss.xml"] = build_rss(site)
        output["sitemap.xml"] = build_sitemap(site)

    if site_store is not None and image_service.id == LocalImageService.id:
        output.update(await _export_images(site, site_store, image_service.derivatives))
    return output


async def _export_images(
    site: SiteModel,
    site_store: SiteStore,
    derivatives: dict[str, tuple[str, ImageTransformOptions]],
) -> dict[str, bytes]:
    """Local source images referenced by the site plus the derivatives pages link to."""
    sources = {ref.src for ref in find_image_refs(site) if ref.service_id == LocalImageService.id}
    sources.update(src for src, _ in derivatives.values())

    originals: dict[str, bytes] = {}
    for src in sorted(sources):
        data = await site_store.read_site_file(site.site_id, src)
        if data is None:
            logger.warning("Image %s referenced by site %s does not exist", src, site.site_id)
            continue
        originals[src] = data

    files: dict[str, bytes] = dict(originals)
    for path, (src, transform) in sorted(derivatives.items()):
        if src not in originals:
            continue
        try:
            files[path] = await asyncio.to_thread(make_derivative, originals[src], transform)
        except ValueError as exc:
            logger.warning("Cannot resize %s for %s: %s", src, path, exc)
    return files


def _has_next_page(resolution: PageResolution) -> bool:
    listing = resolution.collection
    return bool(listing and listing.pagination and listing.pagination.has_next_page)


async def write_site(output: dict[str, str | bytes], target_dir: Path) -> list[Path]:
    """Write a built site to disk; returns the written files."""

    def _write() -> list[Path]:
        written: list[Path] = []
        root = target_dir.resolve()
        for rel_path, content in sorted(output.items()):
            full_path = (root / rel_path).resolve()
            if not full_path.is_relative_to(root):
                raise ValueError(f"Path traversal detected: {rel_path}")
            full_path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                full_path.write_bytes(content)
            else:
                full_path.write_text(content, encoding="utf-8")
            written.append(full_path)
        return written

    return await asyncio.to_thread(_write)
