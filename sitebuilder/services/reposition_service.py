"""Drag-and-drop repositioning of structure tree nodes.

A drag gesture is described by the flattened (sortable) tree, the dragged
node, the node currently hovered, and the pointer's horizontal offset. The
projection derives the depth and parent the dragged node would get if it
were dropped now; applying it produces a new tree. Invalid gestures are
transient UI states, so they yield ``None`` or the unchanged tree instead
of raising.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sitebuilder.services.structure_service import (
    MAX_TREE_DEPTH,
    build_index,
    flatten_tree,
    move_node,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sitebuilder.models.structure import FlattenedNode, StructureNode

logger = logging.getLogger(__name__)

INDENTATION_WIDTH = 24
ROOT_DROP_ID = "__root__"


@dataclass(frozen=True)
class Projection:
    """Candidate placement for the dragged node."""

    depth: int
    min_depth: int
    max_depth: int
    parent_id: str | None
    index: int


def array_move(items: Sequence[FlattenedNode], old: int, new: int) -> list[FlattenedNode]:
    """Move ``items[old]`` to position ``new``."""
    result = list(items)
    result.insert(new, result.pop(old))
    return result


def _remove_descendants(items: Sequence[FlattenedNode], active_id: str) -> list[FlattenedNode]:
    """Collapse the dragged node's subtree out of the candidate order."""
    hidden = {active_id}
    result: list[FlattenedNode] = []
    for item in items:
        if item.parent_id in hidden and item.id != active_id:
            hidden.add(item.id)
            continue
        result.append(item)
    return result


def _subtree_height(items: Sequence[FlattenedNode], active_id: str) -> int:
    active_index = next(i for i, item in enumerate(items) if item.id == active_id)
    base = items[active_index].depth
    height = 0
    for item in items[active_index + 1 :]:
        if item.depth <= base:
            break
        height = max(height, item.depth - base)
    return height


def _drag_depth(offset: float, indentation_width: int) -> int:
    # Round half up, matching pointer-based sortable trees
    return math.floor(offset / indentation_width + 0.5)


def _parent_for_depth(
    depth: int,
    previous: FlattenedNode | None,
    candidate: Sequence[FlattenedNode],
    over_index: int,
) -> str | None:
    if depth == 0 or previous is None:
        return None
    if depth == previous.depth:
        return previous.parent_id
    if depth > previous.depth:
        return previous.id
    for item in reversed(candidate[:over_index]):
        if item.depth == depth:
            return item.parent_id
    return None


def project_move(
    items: Sequence[FlattenedNode],
    active_id: str,
    over_id: str,
    offset: float,
    indentation_width: int = INDENTATION_WIDTH,
    max_depth: int = MAX_TREE_DEPTH,
) -> Projection | None:
    """Project where ``active_id`` lands when released over ``over_id``.

    ``items`` is the flattened sortable tree (homepage excluded). The depth
    is the active node's depth plus the pointer offset in indentation units,
    clamped between the depth demanded by the following item and one level
    below the preceding item, and capped so the dragged subtree stays within
    ``max_depth``. Returns None for unknown ids, for drops onto the dragged
    node's own subtree, and when no depth satisfies the constraints.
    """
    ids = [item.id for item in items]
    if active_id not in ids or over_id not in ids:
        logger.debug("No projection: active %s or over %s not in tree", active_id, over_id)
        return None

    active_subtree_height = _subtree_height(items, active_id)
    candidates = _remove_descendants(items, active_id)
    candidate_ids = [item.id for item in candidates]
    if over_id not in candidate_ids:
        logger.debug("No projection: %s is inside the dragged subtree of %s", over_id, active_id)
        return None

    active_index = candidate_ids.index(active_id)
    over_index = candidate_ids.index(over_id)
    active = candidates[active_index]
    moved = array_move(candidates, active_index, over_index)
    previous = moved[over_index - 1] if over_index > 0 else None
    following = moved[over_index + 1] if over_index + 1 < len(moved) else None

    projected = active.depth + _drag_depth(offset, indentation_width)
    upper = previous.depth + 1 if previous is not None else 0
    upper = min(upper, max_depth - active_subtree_height)
    lower = following.depth if following is not None else 0
    if upper < lower:
        logger.debug("No projection for %s: no depth fits between neighbours", active_id)
        return None
    depth = max(lower, min(projected, upper))

    parent_id = _parent_for_depth(depth, previous, moved, over_index)
    if parent_id is not None:
        forbidden = {active_id} | {
            item.id for item in items if item.id not in candidate_ids
        }
        if parent_id in forbidden:
            logger.debug("No projection: %s would become its own ancestor", active_id)
            return None

    index = sum(1 for item in moved[:over_index] if item.parent_id == parent_id)
    return Projection(
        depth=depth,
        min_depth=lower,
        max_depth=upper,
        parent_id=parent_id,
        index=index,
    )


def apply_move(
    tree: tuple[StructureNode, ...],
    active_id: str,
    parent_id: str | None,
    index: int,
    homepage_path: str | None = None,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    """Commit a move; invalid moves return ``tree`` unchanged."""
    return move_node(
        tree,
        active_id,
        parent_id,
        index,
        homepage_path=homepage_path,
        max_depth=max_depth,
    )


def apply_projection(
    tree: tuple[StructureNode, ...],
    active_id: str,
    projection: Projection,
    homepage_path: str | None = None,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    return apply_move(
        tree, active_id, projection.parent_id, projection.index, homepage_path, max_depth
    )


def drop_on_root(
    tree: tuple[StructureNode, ...],
    active_id: str,
    homepage_path: str | None = None,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    """Append the dragged node (with its subtree) as the last top-level sibling."""
    last = sum(1 for node in tree if node.path not in (active_id, homepage_path))
    return move_node(
        tree, active_id, None, last, homepage_path=homepage_path, max_depth=max_depth
    )


def reposition(
    tree: tuple[StructureNode, ...],
    active_id: str,
    over_id: str,
    offset: float,
    homepage_path: str | None = None,
    indentation_width: int = INDENTATION_WIDTH,
    max_depth: int = MAX_TREE_DEPTH,
) -> tuple[StructureNode, ...]:
    """Apply a complete drag-and-drop gesture and return the resulting tree."""
    if active_id == over_id or active_id == homepage_path:
        return tree
    if active_id not in build_index(tree):
        logger.debug("Ignoring drag of unknown node %s", active_id)
        return tree
    if over_id == ROOT_DROP_ID:
        return drop_on_root(tree, active_id, homepage_path=homepage_path, max_depth=max_depth)

    exclude = (homepage_path,) if homepage_path is not None else ()
    items = flatten_tree(tree, exclude=exclude)
    projection = project_move(
        items,
        active_id,
        over_id,
        offset,
        indentation_width=indentation_width,
        max_depth=max_depth,
    )
    if projection is None:
        return tree
    return apply_projection(tree, active_id, projection, homepage_path=homepage_path, max_depth=max_depth)
