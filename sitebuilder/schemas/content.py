"""Content file schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from sitebuilder.models.site import ContentFile


class ContentUpdateRequest(BaseModel):
    """Frontmatter and Markdown body of a page."""

    frontmatter: dict[str, Any] = Field(default_factory=dict)
    content: str = Field(default="", max_length=500_000)
    parent_path: str | None = None


class ContentResponse(BaseModel):
    path: str
    slug: str
    title: str
    is_homepage: bool
    is_collection_page: bool
    frontmatter: dict[str, Any]
    content: str

    @classmethod
    def from_file(cls, content_file: ContentFile) -> ContentResponse:
        return cls(
            path=content_file.path,
            slug=content_file.slug,
            title=content_file.title,
            is_homepage=content_file.is_homepage,
            is_collection_page=content_file.is_collection_page,
            frontmatter=dict(content_file.frontmatter),
            content=content_file.content,
        )


class HomepageRequest(BaseModel):
    path: str = Field(min_length=1)
