"""URL and output-path generation for pages in live and export modes."""

from __future__ import annotations

import posixpath

from sitebuilder.filesystem.frontmatter import slug_from_path


def get_url_for_node(
    path: str,
    is_export: bool,
    is_homepage: bool = False,
    page_number: int | None = None,
) -> str:
    """Return the URL segment (live) or output file path (export) for a page.

    Export paths are directory-style so every page becomes ``index.html``:
    ``content/blog.md`` -> ``blog/index.html``; page 2 of that listing ->
    ``blog/page/2/index.html``; the homepage -> ``index.html``.

    Live segments have no extension and no leading slash: ``blog``,
    ``blog?page=2``, and ``""`` for the homepage.
    """
    slug = slug_from_path(path)
    paginated = page_number is not None and page_number > 1

    if is_export:
        base = "" if is_homepage else f"{slug}/"
        if paginated:
            return f"{base}page/{page_number}/index.html"
        return f"{base}index.html"

    segment = "" if is_homepage else slug.removesuffix("/index")
    if segment == "index":
        segment = ""
    if paginated:
        return f"{segment}?page={page_number}"
    return segment


def get_relative_path(from_export_path: str, to_export_path: str) -> str:
    """Relative link from one exported file to another.

    ``blog/post/index.html`` -> ``about/index.html`` gives
    ``../../about/index.html``.
    """
    start = posixpath.dirname(from_export_path) or "."
    return posixpath.relpath(to_export_path, start=start)


def get_live_url(site_root_path: str, segment: str) -> str:
    """Join the live-mode site root with a URL segment."""
    root = site_root_path.rstrip("/")
    if not segment:
        return root or "/"
    if segment.startswith("?"):
        return f"{root or ''}/{segment}"
    return f"{root}/{segment}"


def get_relative_asset_prefix(export_path: str) -> str:
    """``../`` repeated once per directory level of an exported file."""
    return "../" * export_path.count("/")
