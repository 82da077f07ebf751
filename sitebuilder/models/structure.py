"""Structure tree models: the site's page/collection hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class NodeType(StrEnum):
    PAGE = "page"
    COLLECTION = "collection"


@dataclass(frozen=True)
class StructureNode:
    """One entry in the site hierarchy.

    ``path`` is the backing content file path and identifies the node across
    the whole tree. Nodes are immutable; tree operations return new nodes.
    """

    path: str
    title: str
    type: NodeType = NodeType.PAGE
    menu_title: str | None = None
    nav_order: int | None = None
    layout: str | None = None
    children: tuple[StructureNode, ...] = field(default_factory=tuple)

    @property
    def slug(self) -> str:
        return self.path.removeprefix("content/").removesuffix(".md")

    @property
    def label(self) -> str:
        """Navigation label: menu title when set, otherwise the title."""
        return self.menu_title or self.title


@dataclass(frozen=True)
class FlattenedNode:
    """A depth-annotated entry of a flattened structure tree.

    ``node`` keeps its own fields but not its children; the nesting is
    carried by ``parent_id`` and ``depth``.
    """

    id: str
    parent_id: str | None
    depth: int
    index: int
    node: StructureNode
