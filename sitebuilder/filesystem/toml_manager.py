"""TOML reader/writer for a site's manifest.toml."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING, Any

import tomli_w

from sitebuilder.models.site import SiteManifest, SiteSettings, ThemeConfig
from sitebuilder.models.structure import NodeType, StructureNode
from sitebuilder.services.structure_service import build_index

if TYPE_CHECKING:
    from pathlib import Path

MANIFEST_FILE = "manifest.toml"


def parse_structure_node(node_data: dict[str, Any]) -> StructureNode:
    """Parse one ``[[structure]]`` table (and its nested children)."""
    if "path" not in node_data:
        msg = f"Structure entry missing required 'path' field: {node_data}"
        raise ValueError(msg)
    raw_type = node_data.get("type", "page")
    try:
        node_type = NodeType(raw_type)
    except ValueError:
        msg = f"Unknown structure node type {raw_type!r} for {node_data['path']}"
        raise ValueError(msg) from None

    raw_order = node_data.get("nav_order")
    children = tuple(parse_structure_node(c) for c in node_data.get("children", []))
    return StructureNode(
        path=node_data["path"],
        title=node_data.get("title", node_data["path"]),
        type=node_type,
        menu_title=node_data.get("menu_title"),
        nav_order=int(raw_order) if raw_order is not None else None,
        layout=node_data.get("layout"),
        children=children,
    )


def serialize_structure_node(node: StructureNode) -> dict[str, Any]:
    entry: dict[str, Any] = {"type": str(node.type), "path": node.path, "title": node.title}
    if node.menu_title:
        entry["menu_title"] = node.menu_title
    if node.nav_order is not None:
        entry["nav_order"] = node.nav_order
    if node.layout:
        entry["layout"] = node.layout
    if node.children:
        entry["children"] = [serialize_structure_node(c) for c in node.children]
    return entry


def parse_manifest_text(text: str, site_id: str) -> SiteManifest:
    """Parse manifest TOML text.

    Raises ValueError for malformed TOML, malformed structure entries and
    duplicate node paths.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid manifest for site {site_id!r}: {exc}") from exc

    site_data = data.get("site", {})
    theme_data = data.get("theme", {})
    settings_data = data.get("settings", {})

    # Stored sibling order is kept as is
    structure = tuple(parse_structure_node(n) for n in data.get("structure", []))
    # Enforces path uniqueness across the tree
    build_index(structure)

    return SiteManifest(
        site_id=site_id,
        title=site_data.get("title", "My Site"),
        description=site_data.get("description", ""),
        author=site_data.get("author", ""),
        base_url=site_data.get("base_url", ""),
        logo=dict(site_data["logo"]) if isinstance(site_data.get("logo"), dict) else None,
        favicon=dict(site_data["favicon"]) if isinstance(site_data.get("favicon"), dict) else None,
        theme=ThemeConfig(
            name=theme_data.get("name", "default"),
            config=dict(theme_data.get("config", {})),
        ),
        structure=structure,
        layouts=tuple(str(layout_id) for layout_id in data.get("layouts", [])),
        settings=SiteSettings(
            image_service=settings_data.get("image_service", "local"),
            cloudinary_cloud_name=settings_data.get("cloudinary_cloud_name", ""),
        ),
    )


def parse_manifest(site_dir: Path) -> SiteManifest:
    """Parse manifest.toml from a site directory (defaults when absent)."""
    manifest_path = site_dir / MANIFEST_FILE
    if not manifest_path.exists():
        return SiteManifest(site_id=site_dir.name)
    return parse_manifest_text(manifest_path.read_text(encoding="utf-8"), site_dir.name)


def dump_manifest(manifest: SiteManifest) -> str:
    site_data: dict[str, Any] = {
        "title": manifest.title,
        "description": manifest.description,
        "author": manifest.author,
        "base_url": manifest.base_url,
    }
    if manifest.logo:
        site_data["logo"] = dict(manifest.logo)
    if manifest.favicon:
        site_data["favicon"] = dict(manifest.favicon)
    data: dict[str, Any] = {
        "site": site_data,
        "theme": {"name": manifest.theme.name, "config": dict(manifest.theme.config)},
        "settings": {
            "image_service": manifest.settings.image_service,
            "cloudinary_cloud_name": manifest.settings.cloudinary_cloud_name,
        },
    }
    if manifest.layouts:
        data["layouts"] = list(manifest.layouts)
    data["structure"] = [serialize_structure_node(n) for n in manifest.structure]
    return tomli_w.dumps(data)


def write_manifest(site_dir: Path, manifest: SiteManifest) -> None:
    """Write the manifest back to manifest.toml."""
    manifest_path = site_dir / MANIFEST_FILE
    manifest_path.write_bytes(dump_manifest(manifest).encode("utf-8"))
