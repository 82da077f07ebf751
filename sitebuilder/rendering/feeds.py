"""RSS feed and sitemap for exported sites."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from xml.etree.ElementTree import Element, SubElement, tostring

import pendulum

from sitebuilder.services.datetime_service import now_utc, parse_datetime
from sitebuilder.services.structure_service import flatten_tree
from sitebuilder.services.url_service import get_url_for_node

if TYPE_CHECKING:
    from datetime import datetime

    from sitebuilder.models.site import ContentFile, SiteModel

logger = logging.getLogger(__name__)

RSS_ITEM_LIMIT = 20
ATOM_NS = "http://www.w3.org/2005/Atom"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def absolute_url(site: SiteModel, content_path: str) -> str:
    """Public URL of a page under the site's ``base_url``."""
    homepage = site.homepage
    is_homepage = homepage is not None and homepage.path == content_path
    segment = get_url_for_node(content_path, False, is_homepage)
    return f"{site.manifest.base_url.rstrip('/')}/{segment}"


def _published(content_file: ContentFile) -> datetime | None:
    raw = content_file.frontmatter.get("date")
    if not raw:
        return None
    try:
        return parse_datetime(str(raw))
    except ValueError:
        logger.warning("Unparseable date %r in %s; left out of the feed", raw, content_file.path)
        return None


def build_rss(site: SiteModel, now: datetime | None = None) -> str:
    """RSS 2.0 feed of the newest dated pages (collection pages excluded)."""
    manifest = site.manifest
    base_url = manifest.base_url.rstrip("/")

    entries: list[tuple[datetime, str, ContentFile]] = []
    for item in flatten_tree(manifest.structure):
        content_file = site.get_content_file(item.id)
        if content_file is None or content_file.is_collection_page:
            continue
        published = _published(content_file)
        if published is not None:
            entries.append((published, item.node.title, content_file))
    entries.sort(key=lambda entry: entry[0], reverse=True)

    rss = Element("rss", attrib={"version": "2.0", "xmlns:atom": ATOM_NS})
    channel = SubElement(rss, "channel")
    SubElement(channel, "title").text = manifest.title
    SubElement(channel, "link").text = f"{base_url}/"
    SubElement(channel, "description").text = manifest.description
    SubElement(channel, "lastBuildDate").text = pendulum.instance(now or now_utc()).to_rfc2822_string()
    SubElement(
        channel,
        "atom:link",
        attrib={"href": f"{base_url}/rss.xml", "rel": "self", "type": "application/rss+xml"},
    )

    for published, title, content_file in entries[:RSS_ITEM_LIMIT]:
        url = absolute_url(site, content_file.path)
        item_el = SubElement(channel, "item")
        SubElement(item_el, "title").text = title
        SubElement(item_el, "link").text = url
        SubElement(item_el, "guid", attrib={"isPermaLink": "true"}).text = url
        SubElement(item_el, "pubDate").text = pendulum.instance(published).to_rfc2822_string()
        SubElement(item_el, "description").text = str(content_file.frontmatter.get("description") or "")

    return _XML_DECLARATION + tostring(rss, encoding="unicode")


def build_sitemap(site: SiteModel, now: datetime | None = None) -> str:
    """Sitemap listing every page in the structure tree that has content."""
    urlset = Element("urlset", attrib={"xmlns": SITEMAP_NS})
    fallback = pendulum.instance(now or now_utc()).to_date_string()
    for item in flatten_tree(site.manifest.structure):
        content_file = site.get_content_file(item.id)
        if content_file is None:
            continue
        published = _published(content_file)
        url_el = SubElement(urlset, "url")
        SubElement(url_el, "loc").text = absolute_url(site, content_file.path)
        SubElement(url_el, "lastmod").text = (
            pendulum.instance(published).to_date_string() if published is not None else fallback
        )
    return _XML_DECLARATION + tostring(urlset, encoding="unicode")
