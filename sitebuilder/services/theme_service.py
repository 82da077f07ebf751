"""Theme appearance configuration: schema defaults merged with saved values."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sitebuilder.filesystem.assets import AssetStore
    from sitebuilder.models.site import SiteModel

_CSS_KEY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
_CSS_UNSAFE_RE = re.compile(r"[<>{};]")


@dataclass(frozen=True)
class MergedThemeData:
    initial_config: dict[str, Any]
    schema: dict[str, Any] = field(default_factory=dict)


def get_defaults_from_schema(schema: dict[str, Any] | None) -> dict[str, Any]:
    """Property defaults of an appearance schema (nested objects included)."""
    defaults: dict[str, Any] = {}
    for name, prop in ((schema or {}).get("properties") or {}).items():
        if not isinstance(prop, dict):
            continue
        if "default" in prop:
            defaults[name] = prop["default"]
        elif prop.get("type") == "object":
            nested = get_defaults_from_schema(prop)
            if nested:
                defaults[name] = nested
    return defaults


def merge_config(defaults: dict[str, Any], saved: dict[str, Any]) -> dict[str, Any]:
    """Layer saved values over defaults, merging nested objects key by key."""
    merged = dict(defaults)
    for key, value in saved.items():
        base = merged.get(key)
        if isinstance(base, dict) and isinstance(value, dict):
            merged[key] = merge_config(base, value)
        else:
            merged[key] = value
    return merged


async def get_merged_theme_data_for_form(
    theme_name: str,
    config: dict[str, Any] | None,
    site: SiteModel,
    asset_store: AssetStore,
) -> MergedThemeData:
    """Saved appearance values layered over the theme's schema defaults."""
    theme = await asset_store.get_theme_manifest(site, theme_name)
    schema = theme.appearance_schema
    merged = merge_config(get_defaults_from_schema(schema), config or {})
    return MergedThemeData(initial_config=merged, schema=schema)


def generate_style_overrides(theme_config: dict[str, Any]) -> str:
    """CSS custom properties for the theme config, as a ``<style>`` block.

    ``primary_color: "#333"`` becomes ``--primary-color: #333;``. Empty values,
    nested objects and values that could break out of the declaration are
    skipped.
    """
    lines = [
        f"  --{key.replace('_', '-')}: {value};"
        for key, value in theme_config.items()
        if value not in (None, "", False)
        and not isinstance(value, (dict, list))
        and _CSS_KEY_RE.match(key)
        and not _CSS_UNSAFE_RE.search(str(value))
    ]
    if not lines:
        return ""
    body = "\n".join(lines)
    return f'<style id="theme-style-overrides">\n:root {{\n{body}\n}}\n</style>'
