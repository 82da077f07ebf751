"""YAML front matter parser/serializer for content files."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import frontmatter
import yaml

from sitebuilder.models.site import ContentFile

RESERVED_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "date",
        "layout",
        "collection",
        "homepage",
    }
)


def slug_from_path(file_path: str) -> str:
    """Derive a content slug: ``content/blog/post.md`` -> ``blog/post``."""
    return file_path.removeprefix("content/").removesuffix(".md")


def _normalize_value(value: Any) -> Any:
    """Turn YAML-native dates into ISO strings so frontmatter stays JSON-safe."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _normalize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize_value(v) for v in value]
    return value


def parse_content_file(raw_content: str, file_path: str) -> ContentFile:
    """Parse a Markdown file with YAML front matter into a ContentFile.

    Raises ValueError when the front matter is not valid YAML.
    """
    try:
        post = frontmatter.loads(raw_content)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML front matter in {file_path}: {exc}") from exc

    metadata = {str(k): _normalize_value(v) for k, v in post.metadata.items()}

    # Title: non-empty string, otherwise coerced or defaulted
    raw_title = metadata.get("title")
    if raw_title is not None and not isinstance(raw_title, str):
        raw_title = str(raw_title)
    metadata["title"] = raw_title.strip() if raw_title and raw_title.strip() else "Untitled"

    return ContentFile(
        path=file_path,
        slug=slug_from_path(file_path),
        frontmatter=metadata,
        content=post.content.strip(),
    )


def serialize_content_file(content_file: ContentFile) -> str:
    """Serialize a ContentFile back to Markdown with YAML front matter.

    ``None`` values are dropped rather than written as ``null``.
    """
    metadata = {k: v for k, v in content_file.frontmatter.items() if v is not None}
    post = frontmatter.Post(content_file.content, **metadata)
    return str(frontmatter.dumps(post)) + "\n"


def custom_fields(frontmatter_data: dict[str, Any]) -> dict[str, Any]:
    """Return the layout-defined (non-reserved) front matter fields."""
    return {k: v for k, v in frontmatter_data.items() if k not in RESERVED_FIELDS}


def generate_markdown_excerpt(content: str, max_length: int = 300) -> str:
    """Generate a markdown excerpt preserving inline formatting.

    Strips headings, code blocks, and images but keeps bold, italic and
    links so the excerpt can be rendered for collection listings.
    """
    lines: list[str] = []
    in_code_block = False
    for line in content.split("\n"):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue
        if line.strip().startswith("#"):
            continue
        if line.strip().startswith("!["):
            continue
        stripped = line.strip()
        if stripped:
            lines.append(stripped)

    text = " ".join(lines)
    if len(text) > max_length:
        text = text[:max_length].rsplit(" ", maxsplit=1)[0] + "..."
    return text
