"""Jinja2 environment with the site template helpers.

Templates are registered by name into an in-memory loader: theme partials
under their declared name (``header``), theme files as ``theme/<path>`` and
layout files as ``<layout id>/<path>``. Helpers that need per-render data
(links, images, item cards) read the ``render_state`` context variable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from jinja2 import DictLoader, Environment, TemplateNotFound, pass_context
from markupsafe import Markup

from sitebuilder.rendering.context_service import query_collection
from sitebuilder.rendering.markdown import render_markdown
from sitebuilder.rendering.state import RENDER_STATE, RenderState
from sitebuilder.services.datetime_service import format_display_date
from sitebuilder.services.image_service import ImageRef, ImageTransformOptions

if TYPE_CHECKING:
    from jinja2.runtime import Context

    from sitebuilder.models.render import PaginationData

logger = logging.getLogger(__name__)

DEFAULT_TRUNCATE_LENGTH = 140
ITEM_TEMPLATE = "item.html"


def layout_template_name(layout_id: str, file_path: str) -> str:
    return f"{layout_id}/{file_path}"


def theme_template_name(file_path: str) -> str:
    return f"theme/{file_path}"


def _state(context: Context) -> RenderState:
    state = context.get(RENDER_STATE)
    if not isinstance(state, RenderState):
        raise RuntimeError("Template helper used outside of a page render")
    return state


def markdown_filter(text: Any) -> Markup:
    """Rendered, sanitized Markdown; safe to output unescaped."""
    return Markup(render_markdown(str(text) if text else ""))


def str_util(value: Any, op: str = "", length: int = DEFAULT_TRUNCATE_LENGTH) -> str:
    """String utilities: ``truncate``, ``uppercase``, ``lowercase``."""
    if not value or not isinstance(value, str):
        return ""
    if op == "truncate":
        return value if len(value) <= length else value[:length] + "…"
    if op == "uppercase":
        return value.upper()
    if op == "lowercase":
        return value.lower()
    return value


def concat(*args: Any) -> str:
    return "".join(str(arg) for arg in args if arg is not None)


def pager(pagination: PaginationData | None) -> Markup:
    """Previous/next controls with a ``Page X of Y`` indicator."""
    if pagination is None or pagination.total_pages <= 1:
        return Markup("")
    if pagination.has_prev_page and pagination.prev_page_url:
        prev_link = Markup('<a href="{}" class="pager-link pager-prev">‹ Previous</a>').format(
            pagination.prev_page_url
        )
    else:
        prev_link = Markup('<span class="pager-link pager-disabled">‹ Previous</span>')
    if pagination.has_next_page and pagination.next_page_url:
        next_link = Markup('<a href="{}" class="pager-link pager-next">Next ›</a>').format(
            pagination.next_page_url
        )
    else:
        next_link = Markup('<span class="pager-link pager-disabled">Next ›</span>')
    return Markup(
        '<nav class="pager"><div>{}</div><div class="pager-status">Page {} of {}</div>'
        "<div>{}</div></nav>"
    ).format(prev_link, pagination.current_page, pagination.total_pages, next_link)


def _field(target: Any, name: str) -> Any:
    if isinstance(target, dict):
        return target.get(name)
    return getattr(target, name, None)


@pass_context
def url_for(context: Context, target: Any, page: int | None = None) -> str:
    """Link to a page given a content file, item view, node or content path."""
    path = target if isinstance(target, str) else _field(target, "path")
    if not path:
        logger.warning("url_for called with an invalid target: %r", target)
        return "#"
    return _state(context).href_for(path, page)


@pass_context
def image(
    context: Context,
    src: Any,
    width: int | None = None,
    height: int | None = None,
    crop: str = "scale",
    gravity: str | None = None,
    alt: str | None = None,
    lazy: bool = True,
    class_: str | None = None,
) -> Markup:
    """``<img>`` tag for an image reference via the site's image service."""
    ref = ImageRef.from_data(src)
    if ref is None:
        return Markup("<!-- Invalid image reference -->")
    state = _state(context)
    transform = ImageTransformOptions(width=width, height=height, crop=crop, gravity=gravity)
    try:
        url = state.image_service.get_display_url(
            state.site.manifest, ref, transform, state.options.is_export, state.image_url_prefix
        )
    except ValueError as exc:
        logger.warning("Image render failed for %s: %s", ref.src, exc)
        return Markup("<!-- Image render failed -->")

    attrs = [Markup(' src="{}"').format(url)]
    if width:
        attrs.append(Markup(' width="{}"').format(width))
    if height:
        attrs.append(Markup(' height="{}"').format(height))
    attrs.append(Markup(' alt="{}"').format(alt or ref.alt))
    if class_:
        attrs.append(Markup(' class="{}"').format(class_))
    if lazy:
        attrs.append(Markup(' loading="lazy"'))
    return Markup("<img{}>").format(Markup("").join(attrs))


@pass_context
def render_item(context: Context, item: Any, layout: str | None = None) -> Markup:
    """Render a collection item with its item layout's card template."""
    state = _state(context)
    layout_id = layout or state.item_layout or state.layout_id
    try:
        template = context.environment.get_template(layout_template_name(layout_id, ITEM_TEMPLATE))
    except TemplateNotFound:
        logger.warning("Item template for layout %r not found", layout_id)
        return Markup('<a href="{}">{}</a>').format(_field(item, "url") or "#", _field(item, "title") or "")
    return Markup(template.render({"item": item, "options": state.options, RENDER_STATE: state}))


@pass_context
def query(
    context: Context,
    source_collection: str,
    limit: int | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> list[dict[str, Any]]:
    """Items of another collection page, for cross-page listings."""
    return query_collection(_state(context), source_collection, limit, sort_by, sort_order)


class TemplateEngine:
    """A Jinja2 environment whose templates are registered at runtime."""

    def __init__(self) -> None:
        self._templates: dict[str, str] = {}
        self.env = Environment(
            loader=DictLoader(self._templates),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["markdown"] = markdown_filter
        self.env.filters["format_date"] = format_display_date
        self.env.filters["str_util"] = str_util
        self.env.globals.update(
            concat=concat,
            pager=pager,
            url_for=url_for,
            image=image,
            render_item=render_item,
            query=query,
        )

    def register(self, name: str, source: str) -> None:
        """Add or replace a template; re-registering the same source is a no-op."""
        if self._templates.get(name) != source:
            self._templates[name] = source

    def has_template(self, name: str) -> bool:
        return name in self._templates

    def render(self, name: str, context: dict[str, Any]) -> str:
        return self.env.get_template(name).render(context)

