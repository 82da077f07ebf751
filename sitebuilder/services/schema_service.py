"""Frontmatter validation against a layout's JSON schema."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from sitebuilder.filesystem.assets import merge_schemas
from sitebuilder.filesystem.frontmatter import custom_fields
from sitebuilder.services.page_resolver import (
    DEFAULT_COLLECTION_LAYOUT,
    DEFAULT_PAGE_LAYOUT,
    effective_layout,
    find_parent_collection,
)
from sitebuilder.services.structure_service import build_index

if TYPE_CHECKING:
    from sitebuilder.filesystem.assets import AssetStore
    from sitebuilder.models.site import ContentFile, SiteModel

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "array": list,
    "object": dict,
}


def _field_type(prop: dict[str, Any]) -> Any:
    enum = prop.get("enum")
    if isinstance(enum, list) and enum:
        return Literal[tuple(enum)]  # type: ignore[valid-type]
    return _JSON_TYPES.get(str(prop.get("type")), Any)


def build_frontmatter_model(schema: dict[str, Any], name: str = "Frontmatter") -> type[BaseModel]:
    """Create a pydantic model for the layout-defined fields of ``schema``."""
    properties = custom_fields(schema.get("properties") or {})
    required = set(schema.get("required") or [])
    fields: dict[str, Any] = {}
    for field_name, prop in properties.items():
        if not isinstance(prop, dict):
            continue
        field_type = _field_type(prop)
        if field_name in required:
            fields[field_name] = (field_type, ...)
        else:
            fields[field_name] = (field_type | None, None)
    return create_model(name, __config__=ConfigDict(extra="allow"), **fields)


def validate_frontmatter(frontmatter: dict[str, Any], schema: dict[str, Any]) -> list[str]:
    """Validate the non-reserved frontmatter fields; returns error messages."""
    model = build_frontmatter_model(schema)
    try:
        model.model_validate(custom_fields(frontmatter))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.debug("Frontmatter failed validation: %s", errors)
        return errors
    return []


async def schema_for_content(
    site: SiteModel,
    content_file: ContentFile,
    asset_store: AssetStore,
    default_page_layout: str = DEFAULT_PAGE_LAYOUT,
    default_collection_layout: str = DEFAULT_COLLECTION_LAYOUT,
) -> dict[str, Any]:
    """Schema a content file's frontmatter must satisfy.

    The file's own layout schema, extended by the ``item_schema`` of the
    layout of the collection page that lists it.
    """
    index = build_index(site.manifest.structure)
    layout_id = effective_layout(content_file, index, default_page_layout, default_collection_layout)
    schema = (await asset_store.get_layout_manifest(site, layout_id)).schema

    parent = find_parent_collection(site, index, content_file.path)
    if parent is not None:
        parent_layout_id = effective_layout(parent, index, default_page_layout, default_collection_layout)
        parent_layout = await asset_store.get_layout_manifest(site, parent_layout_id)
        schema = merge_schemas(schema, parent_layout.item_schema)
    return schema
