"""Per-render state shared by the context builders and template helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sitebuilder.services.url_service import get_live_url, get_relative_path, get_url_for_node

if TYPE_CHECKING:
    from sitebuilder.models.render import RenderOptions
    from sitebuilder.models.site import SiteModel
    from sitebuilder.services.image_service import ImageService

RENDER_STATE = "render_state"


@dataclass(frozen=True)
class RenderState:
    site: SiteModel
    options: RenderOptions
    image_service: ImageService
    current_export_path: str
    asset_prefix: str
    homepage_path: str | None
    layout_id: str
    item_layout: str | None = None

    def href_for(self, path: str, page_number: int | None = None) -> str:
        """Link to the page at ``path`` from the page being rendered."""
        is_homepage = path == self.homepage_path
        if self.options.is_export:
            target = get_url_for_node(path, True, is_homepage, page_number)
            return get_relative_path(self.current_export_path, target)
        return get_live_url(
            self.options.site_root_path, get_url_for_node(path, False, is_homepage, page_number)
        )

    @property
    def image_url_prefix(self) -> str:
        return self.asset_prefix if self.options.is_export else self.options.site_root_path
