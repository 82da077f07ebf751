"""Property-based tests for structure tree operations and drag repositioning."""

from __future__ import annotations

from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from sitebuilder.models.structure import StructureNode
from sitebuilder.services.reposition_service import ROOT_DROP_ID, reposition
from sitebuilder.services.structure_service import (
    MAX_TREE_DEPTH,
    DeletePolicy,
    build_index,
    build_tree,
    flatten_tree,
    move_node,
    remove_node,
)

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


@st.composite
def _trees(draw: st.DrawFn) -> tuple[StructureNode, ...]:
    """Trees of unique paths, at most three levels deep."""
    counter = iter(range(1000))

    def _level(depth: int) -> tuple[StructureNode, ...]:
        width = draw(st.integers(min_value=0 if depth else 1, max_value=4 if depth == 0 else 3))
        nodes = []
        order = 0
        for position in range(width):
            visible = draw(st.booleans()) or depth == 0
            children = _level(depth + 1) if depth < MAX_TREE_DEPTH and draw(st.booleans()) else ()
            nodes.append(
                StructureNode(
                    path=f"content/n{next(counter)}.md",
                    title=f"Node {position}",
                    nav_order=order if visible else None,
                    children=children,
                )
            )
            order += int(visible)
        return tuple(nodes)

    return _level(0)


def _paths(tree: tuple[StructureNode, ...]) -> set[str]:
    return {item.id for item in flatten_tree(tree)}


def _parent_map(tree: tuple[StructureNode, ...]) -> dict[str, str | None]:
    return {item.id: item.parent_id for item in flatten_tree(tree)}


def _has_cycle(tree: tuple[StructureNode, ...]) -> bool:
    parents = _parent_map(tree)
    for path in parents:
        seen = {path}
        current = parents[path]
        while current is not None:
            if current in seen:
                return True
            seen.add(current)
            current = parents.get(current)
    return False


def _visible_orders_contiguous(nodes: tuple[StructureNode, ...]) -> bool:
    orders = [node.nav_order for node in nodes if node.nav_order is not None]
    if orders != list(range(len(orders))):
        return False
    return all(_visible_orders_contiguous(node.children) for node in nodes)


def _max_depth(tree: tuple[StructureNode, ...]) -> int:
    return max((item.depth for item in flatten_tree(tree)), default=0)


class TestTreeLaws:
    @PROPERTY_SETTINGS
    @given(tree=_trees())
    def test_flatten_build_round_trip(self, tree: tuple[StructureNode, ...]) -> None:
        assert build_tree(flatten_tree(tree)) == tree

    @PROPERTY_SETTINGS
    @given(tree=_trees(), data=st.data())
    def test_remove_never_orphans(self, tree: tuple[StructureNode, ...], data: st.DataObject) -> None:
        path = data.draw(st.sampled_from(sorted(_paths(tree))))
        policy = data.draw(st.sampled_from(list(DeletePolicy)))
        result = remove_node(tree, path, policy)
        parents = _parent_map(result)
        assert path not in parents
        assert all(parent is None or parent in parents for parent in parents.values())
        if policy is DeletePolicy.REPARENT:
            assert _paths(result) == _paths(tree) - {path}


class TestRepositionLaws:
    @PROPERTY_SETTINGS
    @given(tree=_trees(), data=st.data())
    def test_move_preserves_node_set(self, tree: tuple[StructureNode, ...], data: st.DataObject) -> None:
        paths = sorted(_paths(tree))
        path = data.draw(st.sampled_from(paths))
        parent = data.draw(st.one_of(st.none(), st.sampled_from(paths)))
        index = data.draw(st.integers(min_value=0, max_value=5))
        result = move_node(tree, path, parent, index)
        assert _paths(result) == _paths(tree)
        assert not _has_cycle(result)
        assert _max_depth(result) <= MAX_TREE_DEPTH
        build_index(result)

    @PROPERTY_SETTINGS
    @given(tree=_trees(), data=st.data())
    def test_move_under_descendant_is_noop(
        self, tree: tuple[StructureNode, ...], data: st.DataObject
    ) -> None:
        index = build_index(tree)
        candidates = [p for p in sorted(_paths(tree)) if index.descendants(p)]
        assume(candidates)
        path = data.draw(st.sampled_from(candidates))
        descendant = data.draw(st.sampled_from(sorted(index.descendants(path))))
        assert move_node(tree, path, descendant, 0) is tree

    @PROPERTY_SETTINGS
    @given(tree=_trees(), data=st.data())
    def test_drag_gesture_invariants(self, tree: tuple[StructureNode, ...], data: st.DataObject) -> None:
        paths = sorted(_paths(tree))
        active = data.draw(st.sampled_from(paths))
        over = data.draw(st.sampled_from([*paths, ROOT_DROP_ID]))
        offset = data.draw(st.floats(min_value=-100, max_value=100, allow_nan=False))
        homepage = tree[0].path

        result = reposition(tree, active, over, offset, homepage_path=homepage)

        assert _paths(result) == _paths(tree)
        assert not _has_cycle(result)
        assert _max_depth(result) <= MAX_TREE_DEPTH
        assert result[0].path == homepage
        if result != tree:
            assert _visible_orders_contiguous(result)
