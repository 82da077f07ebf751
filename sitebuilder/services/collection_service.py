"""Collection listings: sorting and pagination of collection items."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sitebuilder.exceptions import PageOutOfRangeError
from sitebuilder.models.render import CollectionConfig, CollectionListing, PaginationData
from sitebuilder.services.datetime_service import parse_datetime

if TYPE_CHECKING:
    from collections.abc import Callable

    from sitebuilder.models.site import ContentFile

logger = logging.getLogger(__name__)

SORT_FIELDS: frozenset[str] = frozenset({"date", "title"})
SORT_ORDERS: frozenset[str] = frozenset({"asc", "desc"})
_KNOWN_KEYS: frozenset[str] = frozenset(
    {"sort_by", "sort_order", "items_per_page", "item_layout", "item_page_layout", "listing_style"}
)
_EARLIEST = datetime.min.replace(tzinfo=UTC)


def parse_collection_config(raw: Any) -> CollectionConfig:
    """Parse a ``collection`` frontmatter block.

    Unknown sort settings fall back to newest-first by date. A missing,
    zero or negative ``items_per_page`` means the collection is not paginated.
    """
    if not isinstance(raw, dict):
        return CollectionConfig()

    sort_by = str(raw.get("sort_by", "date"))
    if sort_by not in SORT_FIELDS:
        logger.warning("Unknown collection sort_by %r; sorting by date", sort_by)
        sort_by = "date"
    sort_order = str(raw.get("sort_order", "desc"))
    if sort_order not in SORT_ORDERS:
        logger.warning("Unknown collection sort_order %r; using desc", sort_order)
        sort_order = "desc"

    items_per_page: int | None
    try:
        items_per_page = int(raw["items_per_page"]) if raw.get("items_per_page") else None
    except (TypeError, ValueError):
        items_per_page = None
    if items_per_page is not None and items_per_page <= 0:
        items_per_page = None

    def _opt(key: str) -> str | None:
        value = raw.get(key)
        return str(value) if value else None

    return CollectionConfig(
        sort_by=sort_by,
        sort_order=sort_order,
        items_per_page=items_per_page,
        item_layout=_opt("item_layout"),
        item_page_layout=_opt("item_page_layout"),
        listing_style=_opt("listing_style"),
        options={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
    )


def _date_key(item: ContentFile) -> datetime:
    raw = item.frontmatter.get("date")
    if not raw:
        return _EARLIEST
    try:
        return parse_datetime(str(raw))
    except ValueError:
        logger.warning("Unparseable date %r in %s", raw, item.path)
        return _EARLIEST


def _title_key(item: ContentFile) -> str:
    return item.title.casefold()


def sort_items(items: list[ContentFile], config: CollectionConfig) -> list[ContentFile]:
    """Stable sort; items with equal keys keep their incoming order."""
    key: Callable[[ContentFile], Any] = _title_key if config.sort_by == "title" else _date_key
    return sorted(items, key=key, reverse=config.sort_order == "desc")


def total_pages_for(total_items: int, items_per_page: int) -> int:
    """Page count; an empty collection still has one (empty) page."""
    return max(1, math.ceil(total_items / items_per_page))


def paginate(
    items: list[ContentFile],
    config: CollectionConfig,
    page_number: int = 1,
    url_for_page: Callable[[int], str] | None = None,
) -> CollectionListing:
    """Sort ``items`` and slice out ``page_number``.

    Raises PageOutOfRangeError when the page does not exist. Unpaginated
    collections only have page 1.
    """
    ordered = sort_items(items, config)

    if config.items_per_page is None:
        if page_number != 1:
            raise PageOutOfRangeError(f"Page {page_number} requested for an unpaginated collection")
        return CollectionListing(config=config, items=ordered)

    total_items = len(ordered)
    total_pages = total_pages_for(total_items, config.items_per_page)
    if page_number < 1 or page_number > total_pages:
        raise PageOutOfRangeError(f"Page {page_number} is out of range (1-{total_pages})")

    start = (page_number - 1) * config.items_per_page
    has_prev = page_number > 1
    has_next = page_number < total_pages
    pagination = PaginationData(
        current_page=page_number,
        total_pages=total_pages,
        total_items=total_items,
        has_prev_page=has_prev,
        has_next_page=has_next,
        prev_page_url=url_for_page(page_number - 1) if has_prev and url_for_page else None,
        next_page_url=url_for_page(page_number + 1) if has_next and url_for_page else None,
    )
    return CollectionListing(
        config=config,
        items=ordered[start : start + config.items_per_page],
        pagination=pagination,
    )
