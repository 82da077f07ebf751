"""Structure tree model: lookups, flattening and copy-on-write mutations.

Trees are tuples of frozen ``StructureNode`` values. Lookups go through an
arena index keyed by node path in which parent/child relations are path
references, so ancestry checks are set-membership tests. Every mutation
returns a new tree and leaves the input untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from sitebuilder.models.structure import FlattenedNode, StructureNode

logger = logging.getLogger(__name__)

# Top-level nodes sit at depth 0; nodes may nest two levels below them.
MAX_TREE_DEPTH = 2

_UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "menu_title", "nav_order", "layout", "type"})


class DeletePolicy(StrEnum):
    """What happens to a deleted node's descendants."""

    CASCADE = "cascade"
    REPARENT = "reparent"


@dataclass(frozen=True)
class IndexEntry:
    node: StructureNode
    parent_path: str | None
    depth: int
    index: int


@dataclass(frozen=True)
class StructureIndex:
    """Read-only arena view of a structure tree."""

    entries: Mapping[str, IndexEntry]
    children: Mapping[str | None, tuple[str, ...]]

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def get(self, path: str) -> StructureNode | None:
        entry = self.entries.get(path)
        return entry.node if entry is not None else None

    def parent_of(self, path: str) -> str | None:
        return self.entries[path].parent_path

    def children_of(self, path: str | None) -> tuple[str, ...]:
        return self.children.get(path, ())

    def descendants(self, path: str) -> set[str]:
        """All paths strictly below ``path``."""
        found: set[str] = set()
        stack = list(self.children_of(path))
        while stack:
            current = stack.pop()
            found.add(current)
            stack.extend(self.children_of(current))
        return found

    def ancestors(self, path: str) -> list[str]:
        """Paths from the direct parent up to the top-level ancestor."""
        result: list[str] = []
        parent = self.parent_of(path)
        while parent is not None:
            result.append(parent)
            parent = self.parent_of(parent)
        return result

    def height(self, path: str) -> int:
        """Number of levels below ``path`` (0 for a leaf)."""
        base = self.entries[path].depth
        return max((self.entries[d].depth - base for d in self.descendants(path)), default=0)


def build_index(nodes: Iterable[StructureNode]) -> StructureIndex:
    """Index a tree by path.

    Raises ValueError if a path occurs more than once.
    """
    entries: dict[str, IndexEntry] = {}
    children: dict[str | None, list[str]] = {None: []}
    for item in flatten_tree(nodes):
        if item.id in entries:
            raise ValueError(f"Duplicate structure path: {item.id}")
        entries[item.id] = IndexEntry(
            node=item.node, parent_path=item.parent_id, depth=item.depth, index=item.index
        )
        children.setdefault(item.parent_id, []).append(item.id)
    return StructureIndex(
        entries=entries,
        children={k: tuple(v) for k, v in children.items()},
    )


def flatten_tree(
    nodes: Iterable[StructureNode],
    exclude: Iterable[str] = (),
) -> list[FlattenedNode]:
    """Flatten a tree into visual (pre-order) order.

    Each entry carries its depth and parent path; the stored node has its
    children stripped. Excluded paths are skipped together with their
    subtrees.
    """
    excluded = set(exclude)
    result: list[FlattenedNode] = []

    def _walk(siblings: Iterable[StructureNode], parent_id: str | None, depth: int) -> None:
        index = 0
        for node in siblings:
            if node.path in excluded:
                continue
            result.append(
                FlattenedNode(
                    id=node.path,
                    parent_id=parent_id,
                    depth=depth,
                    index=index,
                    node=replace(node, children=()),
                )
            )
            index += 1
            _walk(node.children, node.path, depth + 1)

    _walk(nodes, None, 0)
    return result


def build_tree(flat: Iterable[FlattenedNode]) -> tuple[StructureNode, ...]:
    """Rebuild a nested tree from flattened entries.

    Sibling order follows the order of the entries. A parent must appear
    before its children; an entry whose parent is unknown raises ValueError.
    """
    nodes: dict[str, StructureNode] = {}
    children: dict[str | None, list[str]] = {None: []}
    for item in flat:
        if item.id in nodes:
            raise ValueError(f"Duplicate structure path: {item.id}")
        if item.parent_id is not None and item.parent_id not in nodes:
            raise ValueError(f"Orphaned structure node {item.id}: parent {item.parent_id} missing")
        nodes[item.id] = item.node
        children.setdefault(item.parent_id, []).append(item.id)

    def _assemble(path: str) -> StructureNode:
        return replace(nodes[path], children=tuple(_assemble(c) for c in children.get(path, [])))

    return tuple(_assemble(path) for path in children[None])


def find_node(nodes: Iterable[StructureNode], path: str) -> StructureNode | None:
    for node in nodes:
        if node.path == path:
            return node
        found = find_node(node.children, path)
        if found is not None:
            return found
    return None


def find_children(nodes: Iterable[StructureNode], path: str) -> tuple[StructureNode, ...]:
    node = find_node(nodes, path)
    return node.children if node is not None else ()


def find_parent_path(nodes: Iterable[StructureNode], path: str) -> str | None:
    index = build_index(nodes)
    return index.parent_of(path) if path in index else None


def descendant_paths(nodes: Iterable[StructureNode], path: str) -> set[str]:
    """All paths below ``path``; empty when the path is not in the tree."""
    index = build_index(nodes)
    return index.descendants(path) if path in index else set()


def subtree_height(nodes: Iterable[StructureNode], path: str) -> int:
    index = build_index(nodes)
    return index.height(path) if path in index else 0


def _nav_sort_key(node: StructureNode) -> tuple[bool, int]:
    return (node.nav_order is None, node.nav_order or 0)


def sort_siblings(nodes: Iterable[StructureNode]) -> tuple[StructureNode, ...]:
    """Recursively stable-sort siblings by nav order, unordered nodes last."""
    return tuple(
        replace(node, children=sort_siblings(node.children))
        for node in sorted(nodes, key=_nav_sort_key)
    )


class _Arena:
    """Mutable working copy used while computing a new tree."""

    def __init__(self, nodes: Iterable[StructureNode]) -> None:
        self.nodes: dict[str, StructureNode] = {}
        self.parents: dict[str, str | None] = {}
        self.children: dict[str | None, list[str]] = {None: []}
        for item in flatten_tree(nodes):
            self.add(item.node, item.parent_id)

    def add(self, node: StructureNode, parent: str | None, position: int | None = None) -> None:
        if node.path in self.nodes:
            raise ValueError(f"Duplicate structure path: {node.path}")
        self.nodes[node.path] = replace(node, children=())
        self.parents[node.path] = parent
        siblings = self.children.setdefault(parent, [])
        if position is None:
            siblings.append(node.path)
        else:
            siblings.insert(max(0, min(position, len(siblings))), node.path)

    def depth(self, path: str) -> int:
        depth = 0
        parent = self.parents[path]
        while parent is not None:
            depth += 1
            parent = self.parents[parent]
        return depth

    def subtree(self, path: str) -> list[str]:
        result = [path]
        for child in self.children.get(path, []):
            result.extend(self.subtree(child))
        return result

    def height(self, path: str) -> int:
        return max((1 + self.height(c) for c in self.children.get(path, [])), default=0)

    def renumber(self, parent: str | None) -> None:
        """Give visible siblings contiguous nav orders from 0 in sequence order."""
        counter = 0
        for path in self.children.get(parent, []):
            node = self.nodes[path]
            if node.nav_order is None:
                continue
            if node.nav_order != counter:
                self.nodes[path] = replace(node, nav_order=counter)
            counter += 1

    def assemble(self, parent: str | None = None) -> tuple[StructureNode, ...]:
        return tuple(
            replace(self.nodes[path], children=self.assemble(path))
            for path in self.children.get(parent, [])
        )


def insert_node(
    nodes: Iterable[StructureNode],
    node: StructureNode,
    parent_path: str | None = None,
    position: int | None = None,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    """Return a new tree with ``node`` (and its subtree) added.

    Without ``position`` the node is appended with nav order one past the
    largest sibling nav order. With ``position`` it is inserted at that
    sibling index and visible siblings are renumbered.

    Raises ValueError for duplicate paths, unknown parents, or nesting
    deeper than ``max_depth``.
    """
    arena = _Arena(nodes)
    if parent_path is not None and parent_path not in arena.nodes:
        raise ValueError(f"Parent node not found: {parent_path}")

    depth = arena.depth(parent_path) + 1 if parent_path is not None else 0
    new_height = max((item.depth for item in flatten_tree((node,))), default=0)
    if depth + new_height > max_depth:
        raise ValueError(f"Inserting {node.path} would exceed the maximum nesting depth")

    siblings = arena.children.get(parent_path, [])
    if position is None:
        orders = [arena.nodes[p].nav_order for p in siblings]
        next_order = max((o for o in orders if o is not None), default=-1) + 1
        node = replace(node, nav_order=next_order)
    elif node.nav_order is None:
        node = replace(node, nav_order=0)

    for item in flatten_tree((node,)):
        parent = item.parent_id if item.parent_id is not None else parent_path
        arena.add(item.node, parent, position if item.id == node.path else None)

    if position is not None:
        arena.renumber(parent_path)
    return arena.assemble()


def remove_node(
    nodes: Iterable[StructureNode],
    path: str,
    policy: DeletePolicy,
) -> tuple[StructureNode, ...]:
    """Return a new tree without ``path``.

    ``CASCADE`` drops the whole subtree. ``REPARENT`` splices the node's
    children into its slot under its own parent, so no node is orphaned.

    Raises ValueError if the path is not in the tree.
    """
    arena = _Arena(nodes)
    if path not in arena.nodes:
        raise ValueError(f"Structure node not found: {path}")

    parent = arena.parents[path]
    siblings = arena.children[parent]
    slot = siblings.index(path)

    if policy is DeletePolicy.CASCADE:
        for removed in arena.subtree(path):
            del arena.nodes[removed]
            del arena.parents[removed]
            arena.children.pop(removed, None)
        siblings.pop(slot)
    else:
        kids = arena.children.pop(path, [])
        for kid in kids:
            arena.parents[kid] = parent
        siblings[slot : slot + 1] = kids
        del arena.nodes[path]
        del arena.parents[path]

    arena.renumber(parent)
    return arena.assemble()


def move_node(
    nodes: tuple[StructureNode, ...],
    path: str,
    new_parent_path: str | None,
    index: int,
    homepage_path: str | None = None,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    """Move ``path`` (with its subtree) under ``new_parent_path`` at ``index``.

    ``index`` counts the new parent's children excluding the moved node and
    the homepage, which stays pinned at its top-level slot. Nav orders of the
    old and new sibling groups are renumbered.

    Invalid moves (unknown nodes, moving the homepage, nesting under the
    homepage, cycles, or exceeding ``max_depth``) return ``nodes`` unchanged.
    """
    arena = _Arena(nodes)
    if path not in arena.nodes:
        logger.debug("Ignoring move of unknown node %s", path)
        return nodes
    if new_parent_path is not None and new_parent_path not in arena.nodes:
        logger.debug("Ignoring move of %s under unknown parent %s", path, new_parent_path)
        return nodes
    if homepage_path is not None and homepage_path in (path, new_parent_path):
        logger.debug("Ignoring move involving the homepage %s", homepage_path)
        return nodes
    if new_parent_path is not None and new_parent_path in arena.subtree(path):
        logger.debug("Ignoring move of %s under its own subtree (%s)", path, new_parent_path)
        return nodes
    new_depth = arena.depth(new_parent_path) + 1 if new_parent_path is not None else 0
    if new_depth + arena.height(path) > max_depth:
        logger.debug("Ignoring move of %s: depth %d exceeds limit", path, new_depth)
        return nodes

    old_parent = arena.parents[path]
    arena.children[old_parent].remove(path)

    siblings = arena.children.setdefault(new_parent_path, [])
    pinned = homepage_path if homepage_path in siblings else None
    pinned_slot = siblings.index(pinned) if pinned is not None else 0
    if pinned is not None:
        siblings.remove(pinned)
    siblings.insert(max(0, min(index, len(siblings))), path)
    if pinned is not None:
        siblings.insert(min(pinned_slot, len(siblings)), pinned)
    arena.parents[path] = new_parent_path

    arena.renumber(old_parent)
    if new_parent_path != old_parent:
        arena.renumber(new_parent_path)
    return arena.assemble()


def update_node(
    nodes: Iterable[StructureNode],
    path: str,
    /,
    *,
    homepage_path: str | None = None,
    **changes: Any,
) -> tuple[StructureNode, ...]:
    """Return a new tree with settings changed on one node.

    Siblings are re-sorted when ``nav_order`` changes. The homepage, when
    given, keeps its slot among its siblings.
    """
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update structure fields: {', '.join(sorted(unknown))}")
    arena = _Arena(nodes)
    if path not in arena.nodes:
        raise ValueError(f"Structure node not found: {path}")

    arena.nodes[path] = replace(arena.nodes[path], **changes)
    if "nav_order" in changes:
        siblings = arena.children[arena.parents[path]]
        pinned = homepage_path if homepage_path in siblings else None
        if pinned is not None:
            slot = siblings.index(pinned)
            siblings.remove(pinned)
        siblings.sort(key=lambda p: _nav_sort_key(arena.nodes[p]))
        if pinned is not None:
            siblings.insert(slot, pinned)
    return arena.assemble()
