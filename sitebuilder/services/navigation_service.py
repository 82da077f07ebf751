"""Navigation menu generation from the structure tree."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sitebuilder.models.render import NavLinkItem, RenderOptions
from sitebuilder.models.structure import NodeType
from sitebuilder.services.structure_service import sort_siblings
from sitebuilder.services.url_service import get_live_url, get_relative_path, get_url_for_node

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sitebuilder.models.site import SiteModel
    from sitebuilder.models.structure import StructureNode


def _in_navigation(node: StructureNode) -> bool:
    return node.type is NodeType.PAGE and node.nav_order is not None


def generate_nav_links(
    site: SiteModel,
    current_path: str | None,
    options: RenderOptions | None = None,
    current_page: int = 1,
) -> list[NavLinkItem]:
    """Build the navigation menu for the page at ``current_path``.

    Only page nodes with a nav order appear, sorted by it. Collection pages
    appear without their items. In export mode hrefs are relative to the
    current page's output file; in live mode they are rooted at
    ``options.site_root_path``.
    """
    options = options or RenderOptions()
    homepage = site.homepage
    homepage_path = homepage.path if homepage is not None else None
    current_export = (
        get_url_for_node(current_path, True, current_path == homepage_path, current_page)
        if current_path
        else "index.html"
    )

    def _href(path: str) -> str:
        is_homepage = path == homepage_path
        if options.is_export:
            return get_relative_path(current_export, get_url_for_node(path, True, is_homepage))
        return get_live_url(options.site_root_path, get_url_for_node(path, False, is_homepage))

    def _build(nodes: Iterable[StructureNode]) -> list[NavLinkItem]:
        links: list[NavLinkItem] = []
        for node in sort_siblings(nodes):
            if not _in_navigation(node):
                continue
            content = site.get_content_file(node.path)
            is_collection = content is not None and content.is_collection_page
            links.append(
                NavLinkItem(
                    href=_href(node.path),
                    label=node.label,
                    is_active=node.path == current_path,
                    children=[] if is_collection else _build(node.children),
                )
            )
        return links

    return _build(site.manifest.structure)
