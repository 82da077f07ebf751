"""Domain models for the site builder."""

from sitebuilder.models.site import (
    ContentFile,
    SiteManifest,
    SiteModel,
    SiteSettings,
    ThemeConfig,
)
from sitebuilder.models.structure import FlattenedNode, NodeType, StructureNode

__all__ = [
    "ContentFile",
    "FlattenedNode",
    "NodeType",
    "SiteManifest",
    "SiteModel",
    "SiteSettings",
    "StructureNode",
    "ThemeConfig",
]
