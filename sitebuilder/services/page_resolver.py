"""Page resolution: map a requested path to content, layout and listing."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from sitebuilder.exceptions import PageOutOfRangeError
from sitebuilder.models.render import NotFound, PageResolution, RenderOptions
from sitebuilder.services.collection_service import paginate, parse_collection_config
from sitebuilder.services.structure_service import build_index
from sitebuilder.services.url_service import get_live_url, get_relative_path, get_url_for_node

if TYPE_CHECKING:
    from sitebuilder.models.render import CollectionListing, PageResolutionResult
    from sitebuilder.models.site import ContentFile, SiteModel
    from sitebuilder.services.structure_service import StructureIndex

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LAYOUT = "page"
DEFAULT_COLLECTION_LAYOUT = "listing"

_PAGED_PATH_RE = re.compile(r"^(?P<base>.+)/page/(?P<number>\d+)$")


def normalize_path(path: str) -> str:
    """Strip surrounding slashes and a trailing ``.html``/``index.html``."""
    cleaned = path.strip().strip("/")
    cleaned = cleaned.removesuffix("index.html").removesuffix(".html").strip("/")
    return cleaned


def content_path_for(path: str) -> str:
    return f"content/{path}.md"


def get_homepage(site: SiteModel) -> ContentFile | None:
    """The content file carrying the homepage flag."""
    return site.homepage


def pagination_url_builder(
    content_path: str,
    is_homepage: bool,
    options: RenderOptions,
    current_export_path: str,
):
    """Build page-number -> URL links consistent with the render mode."""

    def _url(page_number: int) -> str:
        if options.is_export:
            target = get_url_for_node(content_path, True, is_homepage, page_number)
            return get_relative_path(current_export_path, target)
        segment = get_url_for_node(content_path, False, is_homepage, page_number)
        return get_live_url(options.site_root_path, segment)

    return _url


def collection_items(site: SiteModel, index: StructureIndex, path: str) -> list[ContentFile]:
    """Descendant content of a collection page, in structure-tree order.

    Nested collection pages and everything below them are skipped; their
    items belong to their own listing.
    """
    items: list[ContentFile] = []
    stack = list(reversed(index.children_of(path)))
    while stack:
        child = stack.pop()
        content = site.get_content_file(child)
        if content is not None and content.is_collection_page:
            continue
        if content is not None:
            items.append(content)
        stack.extend(reversed(index.children_of(child)))
    return items


def effective_layout(
    content: ContentFile,
    index: StructureIndex,
    default_page_layout: str,
    default_collection_layout: str,
) -> str:
    explicit = content.frontmatter.get("layout")
    if explicit:
        return str(explicit)
    node = index.get(content.path)
    if node is not None and node.layout:
        return node.layout
    return default_collection_layout if content.is_collection_page else default_page_layout


def find_parent_collection(
    site: SiteModel, index: StructureIndex, path: str
) -> ContentFile | None:
    """Nearest ancestor collection page that lists ``path``, if any."""
    if path not in index:
        return None
    for ancestor in index.ancestors(path):
        content = site.get_content_file(ancestor)
        if content is not None and content.is_collection_page:
            return content
    return None


def _lookup(site: SiteModel, path: str) -> tuple[ContentFile | None, int]:
    content = site.get_content_file(content_path_for(path))
    if content is not None:
        return content, 1
    match = _PAGED_PATH_RE.match(path)
    if match is not None:
        base = site.get_content_file(content_path_for(match.group("base")))
        if base is not None and base.is_collection_page:
            return base, int(match.group("number"))
    return None, 1


def resolve(
    path: str,
    site: SiteModel,
    page: int | None = None,
    options: RenderOptions | None = None,
    default_page_layout: str = DEFAULT_PAGE_LAYOUT,
    default_collection_layout: str = DEFAULT_COLLECTION_LAYOUT,
) -> PageResolutionResult:
    """Resolve ``path`` against the site.

    ``""`` is the homepage. Any other path maps to ``content/<path>.md``;
    ``<path>/page/<n>`` addresses page ``n`` of a collection page. An explicit
    ``page`` argument overrides the page number from the path. Never raises
    for unknown paths and never modifies ``site``.
    """
    options = options or RenderOptions()
    requested = normalize_path(path)
    homepage = get_homepage(site)

    if not requested:
        content, path_page = homepage, 1
        if content is None:
            return NotFound(reason="This site has no homepage.")
    else:
        content, path_page = _lookup(site, requested)
        if content is None:
            return NotFound(reason=f"No page found at the path /{requested}.")

    page_number = page if page is not None else path_page
    index = build_index(site.manifest.structure)
    is_homepage = homepage is not None and content.path == homepage.path

    listing: CollectionListing | None = None
    if content.is_collection_page:
        config = parse_collection_config(content.frontmatter.get("collection"))
        current_export = get_url_for_node(content.path, True, is_homepage, page_number)
        try:
            listing = paginate(
                collection_items(site, index, content.path),
                config,
                page_number,
                pagination_url_builder(content.path, is_homepage, options, current_export),
            )
        except PageOutOfRangeError as exc:
            return NotFound(reason=str(exc))
    elif page_number != 1:
        return NotFound(reason=f"/{requested} is not a paginated page.")

    return PageResolution(
        content_file=content,
        layout=effective_layout(content, index, default_page_layout, default_collection_layout),
        page_title=content.title,
        node=index.get(content.path),
        collection=listing,
        parent_collection=find_parent_collection(site, index, content.path),
        is_homepage=is_homepage,
    )
