"""Markdown to sanitized HTML."""

from __future__ import annotations

import html
import logging
import re
from html.parser import HTMLParser
from urllib.parse import urlparse as _urlparse

import markdown as _markdown

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS: tuple[str, ...] = (
    "tables",
    "fenced_code",
    "footnotes",
    "sane_lists",
    "toc",
)

_SAFE_ID_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9:_-]*$")
_VOID_TAGS: frozenset[str] = frozenset({"br", "hr", "img"})
_ALLOWED_TAGS: frozenset[str] = frozenset(
    {
        "a",
        "abbr",
        "blockquote",
        "br",
        "code",
        "dd",
        "del",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "img",
        "kbd",
        "li",
        "ol",
        "p",
        "pre",
        "section",
        "span",
        "strong",
        "sub",
        "sup",
        "table",
        "tbody",
        "td",
        "th",
        "thead",
        "tr",
        "ul",
    }
)
# Content of these is dropped along with the tag.
_DROPPED_CONTENT_TAGS: frozenset[str] = frozenset({"script", "style", "iframe", "object"})
_GLOBAL_ALLOWED_ATTRS: frozenset[str] = frozenset({"class", "id"})
_TAG_ALLOWED_ATTRS: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "title"}),
    "abbr": frozenset({"title"}),
    "img": frozenset({"alt", "src", "title", "width", "height"}),
    "td": frozenset({"colspan", "rowspan", "align"}),
    "th": frozenset({"colspan", "rowspan", "align"}),
}


def _is_safe_url(url_value: str, *, allow_non_http: bool) -> bool:
    """Validate URL values for href/src attributes."""
    value = url_value.strip()
    if not value:
        return False
    if value.startswith(("#", "/", "./", "../")):
        return not value.startswith("//")

    parsed = _urlparse(value)
    if not parsed.scheme:
        return True

    allowed_schemes = {"http", "https"}
    if allow_non_http:
        allowed_schemes.update({"mailto", "tel"})
    return parsed.scheme.lower() in allowed_schemes


class _HtmlSanitizer(HTMLParser):
    """Allowlist-based HTML sanitizer for rendered Markdown."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=False)
        self._parts: list[str] = []
        self._open_tags: list[str | None] = []
        self._dropping = 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag_name = tag.lower()
        if tag_name in _DROPPED_CONTENT_TAGS:
            self._dropping += 1
            self._open_tags.append(None)
            return
        if tag_name not in _ALLOWED_TAGS or tag_name in _VOID_TAGS:
            if tag_name in _VOID_TAGS:
                self.handle_startendtag(tag, attrs)
            else:
                self._open_tags.append(None)
            return
        if self._dropping:
            self._open_tags.append(None)
            return

        self._parts.append(f"<{tag_name}{self._render_attrs(tag_name, attrs)}>")
        self._open_tags.append(tag_name)

    def handle_endtag(self, tag: str) -> None:
        tag_name = tag.lower()
        if tag_name in _VOID_TAGS or not self._open_tags:
            return
        open_tag = self._open_tags.pop()
        if tag_name in _DROPPED_CONTENT_TAGS and self._dropping:
            self._dropping -= 1
            return
        if open_tag == tag_name:
            self._parts.append(f"</{tag_name}>")

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag_name = tag.lower()
        if tag_name not in _ALLOWED_TAGS or self._dropping:
            return
        self._parts.append(f"<{tag_name}{self._render_attrs(tag_name, attrs)} />")

    def handle_data(self, data: str) -> None:
        if not self._dropping:
            self._parts.append(html.escape(data, quote=False))

    def handle_entityref(self, name: str) -> None:
        if not self._dropping:
            self._parts.append(f"&{name};")

    def handle_charref(self, name: str) -> None:
        if not self._dropping:
            self._parts.append(f"&#{name};")

    def get_sanitized_html(self) -> str:
        return "".join(self._parts)

    def _render_attrs(self, tag_name: str, attrs: list[tuple[str, str | None]]) -> str:
        return "".join(
            f' {name}="{html.escape(value, quote=True)}"'
            for name, value in self._sanitize_attrs(tag_name, attrs)
        )

    def _sanitize_attrs(
        self,
        tag_name: str,
        attrs: list[tuple[str, str | None]],
    ) -> list[tuple[str, str]]:
        allowed_attrs = _GLOBAL_ALLOWED_ATTRS | _TAG_ALLOWED_ATTRS.get(tag_name, frozenset())
        sanitized: list[tuple[str, str]] = []

        for raw_name, raw_value in attrs:
            name = raw_name.lower()
            if raw_value is None or name not in allowed_attrs:
                continue

            value = raw_value.strip()
            if name == "href" and not _is_safe_url(value, allow_non_http=True):
                continue
            if name == "src" and not _is_safe_url(value, allow_non_http=False):
                continue
            if name == "id" and not _SAFE_ID_RE.fullmatch(value):
                continue

            sanitized.append((name, value))
        return sanitized


def sanitize_html(rendered_html: str) -> str:
    """Sanitize rendered HTML output to prevent script execution."""
    sanitizer = _HtmlSanitizer()
    sanitizer.feed(rendered_html)
    sanitizer.close()
    return sanitizer.get_sanitized_html()


def render_markdown(text: str | None) -> str:
    """Render Markdown to sanitized HTML5; empty input gives an empty string."""
    if not text:
        return ""
    rendered = _markdown.markdown(
        text,
        extensions=list(MARKDOWN_EXTENSIONS),
        output_format="html",
    )
    return sanitize_html(rendered)
