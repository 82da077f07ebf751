"""Theme and layout bundle manifests (``theme.json`` / ``layout.json``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class AssetKind(StrEnum):
    THEME = "theme"
    LAYOUT = "layout"

    @property
    def directory(self) -> str:
        return f"{self.value}s"


@dataclass(frozen=True)
class AssetFile:
    """A file declared by a bundle manifest.

    ``type`` is one of ``base``, ``template``, ``partial``, ``stylesheet``,
    ``script`` or ``asset``; partials are registered under ``name``.
    """

    path: str
    type: str
    name: str | None = None


@dataclass(frozen=True)
class DisplayOptionGroup:
    """A named choice between body template variants (e.g. list vs grid)."""

    default: str | None = None
    options: dict[str, str] = field(default_factory=dict)

    def template_for(self, choice: str | None) -> str | None:
        key = choice if choice in self.options else self.default
        return self.options.get(key) if key is not None else None


@dataclass(frozen=True)
class ImagePreset:
    source: str
    width: int | None = None
    height: int | None = None
    crop: str = "scale"
    gravity: str | None = None


@dataclass(frozen=True)
class LayoutManifest:
    id: str
    name: str
    layout_type: str = "page"
    schema: dict[str, Any] = field(default_factory=dict)
    item_schema: dict[str, Any] | None = None
    display_options: dict[str, DisplayOptionGroup] = field(default_factory=dict)
    image_presets: dict[str, ImagePreset] = field(default_factory=dict)
    files: tuple[AssetFile, ...] = ()


@dataclass(frozen=True)
class ThemeManifest:
    name: str
    files: tuple[AssetFile, ...] = ()
    appearance_schema: dict[str, Any] = field(default_factory=dict)

    @property
    def base_template(self) -> str:
        return next((f.path for f in self.files if f.type == "base"), "base.html")

    @property
    def partials(self) -> tuple[AssetFile, ...]:
        return tuple(f for f in self.files if f.type == "partial" and f.name)

    @property
    def stylesheets(self) -> tuple[str, ...]:
        return tuple(f.path for f in self.files if f.type == "stylesheet")
