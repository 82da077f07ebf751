"""Page render pipeline: resolved page + site -> complete HTML document."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from jinja2 import TemplateError
from markupsafe import Markup

from sitebuilder.exceptions import RenderError, TemplateAssetMissingError
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.models.assets import AssetKind
from sitebuilder.models.render import NotFound, RenderOptions
from sitebuilder.rendering.context_service import assemble_base_context, assemble_page_context
from sitebuilder.rendering.state import RenderState
from sitebuilder.rendering.template_engine import (
    TemplateEngine,
    layout_template_name,
    theme_template_name,
)
from sitebuilder.services.collection_service import parse_collection_config
from sitebuilder.services.image_service import get_active_image_service
from sitebuilder.services.navigation_service import generate_nav_links
from sitebuilder.services.theme_service import get_merged_theme_data_for_form
from sitebuilder.services.url_service import get_relative_asset_prefix, get_url_for_node

if TYPE_CHECKING:
    from sitebuilder.models.assets import LayoutManifest
    from sitebuilder.models.render import PageResolution, PageResolutionResult
    from sitebuilder.models.site import SiteModel
    from sitebuilder.services.image_service import ImageService

logger = logging.getLogger(__name__)

DEFAULT_BODY_TEMPLATE = "index.html"
_TEMPLATE_SUFFIXES: tuple[str, ...] = (".html", ".jinja", ".j2")


def render_not_found(result: NotFound) -> str:
    """Minimal standalone 404 document; the reason is escaped."""
    return str(
        Markup(
            "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\"><title>404 - Not Found</title>"
            "</head><body><h1>404 - Not Found</h1><p>{}</p></body></html>"
        ).format(result.reason)
    )


def select_body_template(resolution: PageResolution, layout: LayoutManifest) -> str:
    """Display-option variant chosen for this page, or the default body template.

    Collection pages use their ``listing_style``; other pages use the parent
    collection's ``item_page_layout`` or their own ``page_style``.
    """
    frontmatter = resolution.content_file.frontmatter
    if resolution.collection is not None:
        group = layout.display_options.get("listing")
        choice = resolution.collection.config.listing_style
    else:
        group = layout.display_options.get("page")
        choice = None
        if resolution.parent_collection is not None:
            choice = parse_collection_config(
                resolution.parent_collection.frontmatter.get("collection")
            ).item_page_layout
        choice = choice or frontmatter.get("page_style")
    template = group.template_for(choice) if group is not None else None
    return template or DEFAULT_BODY_TEMPLATE


class Renderer:
    """Renders pages; keeps one template environment per site."""

    def __init__(
        self,
        asset_store: AssetStore | None = None,
        image_service: ImageService | None = None,
    ) -> None:
        self.asset_store = asset_store or AssetStore()
        self.image_service = image_service
        self._engines: dict[str, TemplateEngine] = {}

    def engine_for(self, site_id: str) -> TemplateEngine:
        if site_id not in self._engines:
            self._engines[site_id] = TemplateEngine()
        return self._engines[site_id]

    async def synchronize_theme(self, site: SiteModel) -> SiteModel:
        """Site model whose theme config has schema defaults filled in."""
        theme = site.manifest.theme
        merged = await get_merged_theme_data_for_form(theme.name, theme.config, site, self.asset_store)
        manifest = replace(site.manifest, theme=replace(theme, config=merged.initial_config))
        return replace(site, manifest=manifest)

    async def prepare_environment(self, site: SiteModel, layout_ids: list[str]) -> TemplateEngine:
        """Register theme and layout templates for ``site``; safe to repeat."""
        engine = self.engine_for(site.site_id)
        store = self.asset_store
        theme_name = site.manifest.theme.name
        theme = await store.get_theme_manifest(site, theme_name)

        for file in theme.files:
            if file.type not in ("base", "partial", "template"):
                continue
            source = await store.get_asset_content(site, AssetKind.THEME, theme_name, file.path)
            if source is None:
                logger.debug("Theme %s declares missing file %s", theme_name, file.path)
                continue
            engine.register(theme_template_name(file.path), source)
            if file.type == "partial" and file.name:
                engine.register(file.name, source)

        layouts = await store.get_available_layouts(site)
        known = {layout.id for layout in layouts}
        for layout_id in layout_ids:
            if layout_id not in known:
                layouts.append(await store.get_layout_manifest(site, layout_id))
                known.add(layout_id)

        for layout in layouts:
            paths = [f.path for f in layout.files if f.path.endswith(_TEMPLATE_SUFFIXES)]
            prefix = f"layouts/{layout.id}/"
            paths.extend(
                key.removeprefix(prefix)
                for key in site.layout_files
                if key.startswith(prefix) and key.endswith(_TEMPLATE_SUFFIXES)
            )
            names = {f.path: f.name for f in layout.files if f.name}
            for path in dict.fromkeys(paths):
                source = await store.get_asset_content(site, AssetKind.LAYOUT, layout.id, path)
                if source is None:
                    logger.debug("Layout %s declares missing file %s", layout.id, path)
                    continue
                engine.register(layout_template_name(layout.id, path), source)
                if names.get(path):
                    engine.register(names[path], source)
        return engine

    async def render(
        self,
        site: SiteModel,
        resolution: PageResolutionResult,
        options: RenderOptions | None = None,
    ) -> str:
        """Render a resolved page to a complete HTML document.

        Raises TemplateAssetMissingError when the body or base template is
        missing and RenderError (tagged with the failing stage) when a
        template fails to render.
        """
        if isinstance(resolution, NotFound):
            return render_not_found(resolution)
        options = options or RenderOptions()

        # 1. theme config
        site = await self.synchronize_theme(site)
        manifest = site.manifest

        # 2. environment
        layout_ids = [resolution.layout]
        item_layout = resolution.collection.config.item_layout if resolution.collection else None
        if item_layout:
            layout_ids.append(item_layout)
        engine = await self.prepare_environment(site, layout_ids)
        layout = await self.asset_store.get_layout_manifest(site, resolution.layout)
        theme = await self.asset_store.get_theme_manifest(site, manifest.theme.name)

        # 3. image service
        image_service = self.image_service or get_active_image_service(manifest)

        page_number = (
            resolution.collection.pagination.current_page
            if resolution.collection is not None and resolution.collection.pagination is not None
            else None
        )
        export_path = get_url_for_node(
            resolution.content_file.path, True, resolution.is_homepage, page_number
        )
        homepage = site.homepage
        state = RenderState(
            site=site,
            options=options,
            image_service=image_service,
            current_export_path=export_path,
            asset_prefix=get_relative_asset_prefix(export_path),
            homepage_path=homepage.path if homepage is not None else None,
            layout_id=resolution.layout,
            item_layout=item_layout,
        )
        nav_links = generate_nav_links(site, resolution.content_file.path, options, page_number or 1)

        # 4-5. contexts
        page_context = assemble_page_context(state, resolution, layout, nav_links)
        base_context = assemble_base_context(state, resolution, theme, page_context["images"], nav_links)

        # 6. body
        body_name = layout_template_name(resolution.layout, select_body_template(resolution, layout))
        if not engine.has_template(body_name):
            raise TemplateAssetMissingError(f"layouts/{body_name}", stage="body")
        try:
            body_html = engine.render(body_name, page_context)
        except TemplateError as exc:
            raise RenderError(f"Body template {body_name} failed: {exc}", stage="body") from exc

        # 7. base shell
        base_name = theme_template_name(theme.base_template)
        if not engine.has_template(base_name):
            raise TemplateAssetMissingError(f"themes/{manifest.theme.name}/{theme.base_template}", stage="base")
        try:
            return engine.render(base_name, {**base_context, "body": Markup(body_html)})
        except TemplateError as exc:
            raise RenderError(f"Base template {base_name} failed: {exc}", stage="base") from exc


async def render(
    site: SiteModel,
    resolution: PageResolutionResult,
    options: RenderOptions | None = None,
    asset_store: AssetStore | None = None,
) -> str:
    """Render one page with a fresh renderer."""
    return await Renderer(asset_store).render(site, resolution, options)
