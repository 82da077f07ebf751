"""In-memory site model: manifest, content files and asset bundles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sitebuilder.models.structure import StructureNode

HOMEPAGE_FIELD = "homepage"
COLLECTION_FIELD = "collection"


@dataclass(frozen=True)
class ContentFile:
    """A parsed Markdown content file."""

    path: str
    slug: str
    frontmatter: dict[str, Any]
    content: str

    @property
    def title(self) -> str:
        return str(self.frontmatter.get("title") or "Untitled")

    @property
    def is_collection_page(self) -> bool:
        return isinstance(self.frontmatter.get(COLLECTION_FIELD), dict)

    @property
    def is_homepage(self) -> bool:
        return self.frontmatter.get(HOMEPAGE_FIELD) is True


@dataclass(frozen=True)
class ThemeConfig:
    """Active theme and the user's saved appearance values."""

    name: str = "default"
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SiteSettings:
    image_service: str = "local"
    cloudinary_cloud_name: str = ""


@dataclass(frozen=True)
class SiteManifest:
    """Site-wide configuration and the structure tree."""

    site_id: str
    title: str = "My Site"
    description: str = ""
    author: str = ""
    base_url: str = ""
    logo: dict[str, Any] | None = None
    favicon: dict[str, Any] | None = None
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    structure: tuple[StructureNode, ...] = field(default_factory=tuple)
    layouts: tuple[str, ...] = field(default_factory=tuple)
    settings: SiteSettings = field(default_factory=SiteSettings)


@dataclass(frozen=True)
class SiteModel:
    """Everything the render pipeline needs for one site.

    Layout and theme files are keyed by their site-relative path, e.g.
    ``layouts/blog/list.html`` or ``themes/custom/base.html``.
    """

    manifest: SiteManifest
    content_files: dict[str, ContentFile] = field(default_factory=dict)
    layout_files: dict[str, str] = field(default_factory=dict)
    theme_files: dict[str, str] = field(default_factory=dict)

    @property
    def site_id(self) -> str:
        return self.manifest.site_id

    def get_content_file(self, path: str) -> ContentFile | None:
        return self.content_files.get(path)

    @property
    def homepage(self) -> ContentFile | None:
        """The content file flagged as homepage, if any."""
        return next((f for f in self.content_files.values() if f.is_homepage), None)
