"""Site, resolution and navigation schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from sitebuilder.models.render import NavLinkItem, PageResolution, PaginationData
    from sitebuilder.models.site import SiteModel
    from sitebuilder.models.structure import StructureNode


class StructureNodeSchema(BaseModel):
    """One node of the structure tree, with its children."""

    path: str
    title: str
    type: str
    menu_title: str | None = None
    nav_order: int | None = None
    layout: str | None = None
    children: list[StructureNodeSchema] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: StructureNode) -> StructureNodeSchema:
        return cls(
            path=node.path,
            title=node.title,
            type=str(node.type),
            menu_title=node.menu_title,
            nav_order=node.nav_order,
            layout=node.layout,
            children=[cls.from_node(child) for child in node.children],
        )


def structure_schema(nodes: tuple[StructureNode, ...]) -> list[StructureNodeSchema]:
    return [StructureNodeSchema.from_node(node) for node in nodes]


class ThemeSchema(BaseModel):
    name: str
    config: dict[str, Any] = Field(default_factory=dict)


class SiteResponse(BaseModel):
    """Site manifest with its structure tree."""

    site_id: str
    title: str
    description: str
    author: str
    base_url: str
    theme: ThemeSchema
    layouts: list[str]
    homepage: str | None
    structure: list[StructureNodeSchema]
    content_paths: list[str]

    @classmethod
    def from_site(cls, site: SiteModel) -> SiteResponse:
        manifest = site.manifest
        homepage = site.homepage
        return cls(
            site_id=manifest.site_id,
            title=manifest.title,
            description=manifest.description,
            author=manifest.author,
            base_url=manifest.base_url,
            theme=ThemeSchema(name=manifest.theme.name, config=dict(manifest.theme.config)),
            layouts=list(manifest.layouts),
            homepage=homepage.path if homepage is not None else None,
            structure=structure_schema(manifest.structure),
            content_paths=sorted(site.content_files),
        )


class PaginationSchema(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_prev_page: bool
    has_next_page: bool
    prev_page_url: str | None = None
    next_page_url: str | None = None

    @classmethod
    def from_data(cls, data: PaginationData) -> PaginationSchema:
        return cls(
            current_page=data.current_page,
            total_pages=data.total_pages,
            total_items=data.total_items,
            has_prev_page=data.has_prev_page,
            has_next_page=data.has_next_page,
            prev_page_url=data.prev_page_url,
            next_page_url=data.next_page_url,
        )


class CollectionSchema(BaseModel):
    items: list[str]
    pagination: PaginationSchema | None = None


class ResolveResponse(BaseModel):
    """Outcome of resolving a path: a page or the reason it was not found."""

    found: bool
    reason: str | None = None
    path: str | None = None
    layout: str | None = None
    page_title: str | None = None
    is_homepage: bool = False
    parent_collection: str | None = None
    collection: CollectionSchema | None = None

    @classmethod
    def from_resolution(cls, resolution: PageResolution) -> ResolveResponse:
        collection = None
        if resolution.collection is not None:
            pagination = resolution.collection.pagination
            collection = CollectionSchema(
                items=[item.path for item in resolution.collection.items],
                pagination=PaginationSchema.from_data(pagination) if pagination else None,
            )
        parent = resolution.parent_collection
        return cls(
            found=True,
            path=resolution.content_file.path,
            layout=resolution.layout,
            page_title=resolution.page_title,
            is_homepage=resolution.is_homepage,
            parent_collection=parent.path if parent is not None else None,
            collection=collection,
        )


class NavLinkSchema(BaseModel):
    href: str
    label: str
    is_active: bool = False
    children: list[NavLinkSchema] = Field(default_factory=list)

    @classmethod
    def from_item(cls, item: NavLinkItem) -> NavLinkSchema:
        return cls(
            href=item.href,
            label=item.label,
            is_active=item.is_active,
            children=[cls.from_item(child) for child in item.children],
        )


class ThemeDataResponse(BaseModel):
    """Theme config with schema defaults filled in, plus the schema for the form."""

    name: str
    initial_config: dict[str, Any]
    appearance_schema: dict[str, Any]
