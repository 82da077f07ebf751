"""Theme and layout asset lookup: site-provided files first, then core bundles."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sitebuilder.models.assets import (
    AssetFile,
    AssetKind,
    DisplayOptionGroup,
    ImagePreset,
    LayoutManifest,
    ThemeManifest,
)

if TYPE_CHECKING:
    from sitebuilder.models.site import SiteModel

logger = logging.getLogger(__name__)

CORE_ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"
CORE_LAYOUTS: tuple[str, ...] = ("page", "listing")
CORE_THEMES: tuple[str, ...] = ("default",)

# Fields every content file may carry, whatever its layout.
BASE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "title": "Title"},
        "description": {"type": "string", "title": "Description"},
        "slug": {"type": "string", "title": "Slug"},
        "date": {"type": "string", "title": "Publication date", "format": "date"},
        "menu_title": {"type": "string", "title": "Menu title"},
    },
    "required": [],
}

# Primary fields edited outside the layout-driven form.
_PRIMARY_FIELDS: tuple[str, ...] = ("title", "description", "slug")


def merge_schemas(base: dict[str, Any], specific: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay a layout schema on the base schema (properties and required merged)."""
    if not specific:
        return {**base, "properties": dict(base.get("properties", {}))}
    required = list(dict.fromkeys([*base.get("required", []), *specific.get("required", [])]))
    return {
        **base,
        **specific,
        "properties": {**base.get("properties", {}), **specific.get("properties", {})},
        "required": required,
    }


def _asset_files(raw: Any) -> tuple[AssetFile, ...]:
    files: list[AssetFile] = []
    for entry in raw or []:
        if isinstance(entry, dict) and entry.get("path"):
            files.append(
                AssetFile(path=str(entry["path"]), type=str(entry.get("type", "asset")), name=entry.get("name"))
            )
    return tuple(files)


def _display_options(raw: Any) -> dict[str, DisplayOptionGroup]:
    groups: dict[str, DisplayOptionGroup] = {}
    for group_name, group in (raw or {}).items():
        if not isinstance(group, dict):
            continue
        options = {
            str(choice): str(spec["template"])
            for choice, spec in (group.get("options") or {}).items()
            if isinstance(spec, dict) and spec.get("template")
        }
        groups[str(group_name)] = DisplayOptionGroup(default=group.get("default"), options=options)
    return groups


def _image_presets(raw: Any) -> dict[str, ImagePreset]:
    presets: dict[str, ImagePreset] = {}
    for name, preset in (raw or {}).items():
        if isinstance(preset, dict) and preset.get("source"):
            presets[str(name)] = ImagePreset(
                source=str(preset["source"]),
                width=preset.get("width"),
                height=preset.get("height"),
                crop=str(preset.get("crop", "scale")),
                gravity=preset.get("gravity"),
            )
    return presets


class AssetStore:
    """Reads theme and layout files for a site.

    Site bundles (``site.theme_files`` / ``site.layout_files``) shadow the
    core bundles shipped with the package. Core file contents are cached for
    the lifetime of the store.
    """

    def __init__(self, core_dir: Path = CORE_ASSETS_DIR) -> None:
        self.core_dir = core_dir
        self._core_cache: dict[str, str | None] = {}

    def _read_core(self, rel_path: str) -> str | None:
        full_path = (self.core_dir / rel_path).resolve()
        if not full_path.is_relative_to(self.core_dir.resolve()):
            raise ValueError(f"Path traversal detected: {rel_path}")
        if not full_path.is_file():
            return None
        return full_path.read_text(encoding="utf-8")

    async def get_asset_content(
        self, site: SiteModel, kind: AssetKind, bundle: str, file_path: str
    ) -> str | None:
        """Raw text of ``<kind>s/<bundle>/<file_path>``, or None when missing."""
        rel_path = f"{kind.directory}/{bundle}/{file_path}"
        site_files = site.theme_files if kind is AssetKind.THEME else site.layout_files
        if rel_path in site_files:
            return site_files[rel_path]
        if rel_path not in self._core_cache:
            self._core_cache[rel_path] = await asyncio.to_thread(self._read_core, rel_path)
        return self._core_cache[rel_path]

    async def get_json_asset(
        self, site: SiteModel, kind: AssetKind, bundle: str, file_path: str
    ) -> dict[str, Any] | None:
        content = await self.get_asset_content(site, kind, bundle, file_path)
        if not content:
            return None
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.error("Invalid JSON in %s/%s/%s", kind.directory, bundle, file_path)
            return None
        return data if isinstance(data, dict) else None

    async def get_layout_manifest(self, site: SiteModel, layout_id: str) -> LayoutManifest:
        """Layout manifest with its schema merged over the base schema.

        A layout without ``layout.json`` gets a page-type fallback manifest
        carrying only the base schema.
        """
        data = await self.get_json_asset(site, AssetKind.LAYOUT, layout_id, "layout.json")
        if data is None:
            return LayoutManifest(id=layout_id, name=layout_id, schema=merge_schemas(BASE_SCHEMA, None))

        schema = merge_schemas(BASE_SCHEMA, data.get("schema"))
        for field_name in _PRIMARY_FIELDS:
            schema["properties"].pop(field_name, None)
        return LayoutManifest(
            id=layout_id,
            name=str(data.get("name", layout_id)),
            layout_type=str(data.get("layout_type", data.get("layoutType", "page"))),
            schema=schema,
            item_schema=data.get("item_schema"),
            display_options=_display_options(data.get("display_options")),
            image_presets=_image_presets(data.get("image_presets")),
            files=_asset_files(data.get("files")),
        )

    async def get_available_layouts(self, site: SiteModel) -> list[LayoutManifest]:
        """Core layouts followed by the site's custom layouts."""
        layout_ids = list(dict.fromkeys([*CORE_LAYOUTS, *site.manifest.layouts]))
        return list(await asyncio.gather(*(self.get_layout_manifest(site, lid) for lid in layout_ids)))

    async def get_theme_manifest(self, site: SiteModel, theme_name: str) -> ThemeManifest:
        data = await self.get_json_asset(site, AssetKind.THEME, theme_name, "theme.json")
        if data is None:
            logger.warning("Theme %s has no theme.json", theme_name)
            return ThemeManifest(name=theme_name)
        return ThemeManifest(
            name=str(data.get("name", theme_name)),
            files=_asset_files(data.get("files")),
            appearance_schema=dict(data.get("appearance_schema") or {}),
        )
