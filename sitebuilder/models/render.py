"""Ephemeral per-render data: options, resolutions, navigation, pagination."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sitebuilder.models.site import ContentFile
    from sitebuilder.models.structure import StructureNode


@dataclass(frozen=True)
class RenderOptions:
    """Render mode flags.

    Export mode produces relative links for a portable static bundle; live
    mode prefixes root-relative URL segments with ``site_root_path``.
    """

    is_export: bool = False
    site_root_path: str = ""


@dataclass(frozen=True)
class PaginationData:
    current_page: int
    total_pages: int
    total_items: int
    has_prev_page: bool
    has_next_page: bool
    prev_page_url: str | None = None
    next_page_url: str | None = None


@dataclass(frozen=True)
class CollectionConfig:
    """The ``collection`` block of a collection page's frontmatter."""

    sort_by: str = "date"
    sort_order: str = "desc"
    items_per_page: int | None = None
    item_layout: str | None = None
    item_page_layout: str | None = None
    listing_style: str | None = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CollectionListing:
    """One page worth of a collection's sorted items."""

    config: CollectionConfig
    items: list[ContentFile]
    pagination: PaginationData | None = None


@dataclass(frozen=True)
class PageResolution:
    content_file: ContentFile
    layout: str
    page_title: str
    node: StructureNode | None = None
    collection: CollectionListing | None = None
    parent_collection: ContentFile | None = None
    is_homepage: bool = False


@dataclass(frozen=True)
class NotFound:
    reason: str


PageResolutionResult = PageResolution | NotFound


@dataclass
class NavLinkItem:
    href: str
    label: str
    is_active: bool = False
    children: list[NavLinkItem] = field(default_factory=list)
