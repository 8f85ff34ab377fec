"""
Tests for flattening and collapse filtering of discussion threads
"""

from feeds.schemas.feeds import CommentNode
from feeds.services.tree_layout import continuation_columns, flatten_comment_tree
from feeds.services.visibility import (
    descendant_counts,
    filter_visible,
    toggle_collapsed,
    visible_layout,
)


def make(id, *replies):
    return CommentNode(id=id, author="a", created_at="now", body=id, replies=list(replies))


def test_three_level_chain():
    forest = [make("root", make("child", make("grandchild")))]
    rows = flatten_comment_tree(forest)

    assert [r.depth for r in rows] == [0, 1, 2]
    assert [r.parent_id for r in rows] == [None, "root", "child"]
    assert len(rows[2].ancestor_has_more_siblings) == 2
    assert all(r.is_last_sibling for r in rows)
    assert [r.has_children for r in rows] == [True, True, False]


def test_rows_follow_pre_order_and_sibling_order():
    forest = [make("a", make("b", make("c")), make("d")), make("e")]
    rows = flatten_comment_tree(forest)
    assert [r.comment.id for r in rows] == ["a", "b", "c", "d", "e"]


def test_ancestor_continuation_flags():
    forest = [make("a", make("b", make("c")), make("d")), make("e")]
    rows = {r.comment.id: r for r in flatten_comment_tree(forest)}

    assert rows["a"].ancestor_has_more_siblings == []
    assert rows["a"].is_last_sibling is False
    # "a" has a sibling below it, "b" has one too
    assert rows["c"].ancestor_has_more_siblings == [True, True]
    assert continuation_columns(rows["c"]) == [0, 1]
    assert rows["d"].ancestor_has_more_siblings == [True]
    assert rows["d"].is_last_sibling is True
    assert rows["e"].is_last_sibling is True


def test_last_root_has_no_continuation_below():
    forest = [make("a"), make("b", make("c"))]
    rows = {r.comment.id: r for r in flatten_comment_tree(forest)}
    assert rows["c"].ancestor_has_more_siblings == [False]
    assert continuation_columns(rows["c"]) == []


def test_flatten_is_idempotent():
    forest = [make("a", make("b")), make("c")]
    assert flatten_comment_tree(forest) == flatten_comment_tree(forest)


def test_empty_forest():
    assert flatten_comment_tree([]) == []
    assert visible_layout([]) == []


def test_collapse_hides_all_descendants():
    # x has five descendants at mixed depths
    forest = [
        make("x", make("x1", make("x11"), make("x12")), make("x2", make("x21"))),
        make("y"),
    ]
    full = flatten_comment_tree(forest)
    visible = filter_visible(full, {"x"})

    assert [r.comment.id for r in visible] == ["x", "y"]
    assert len(full) - len(visible) == 5
    assert descendant_counts(forest)["x"] == 5


def test_collapse_inner_node_keeps_following_siblings():
    forest = [make("a", make("b", make("c")), make("d"))]
    visible = visible_layout(forest, {"b"})
    assert [r.comment.id for r in visible] == ["a", "b", "d"]


def test_nested_collapse():
    forest = [make("a", make("b", make("c")), make("d"))]
    visible = visible_layout(forest, {"a", "b"})
    assert [r.comment.id for r in visible] == ["a"]


def test_collapse_round_trip_restores_rows():
    forest = [make("a", make("b", make("c")), make("d"))]
    collapsed = toggle_collapsed(frozenset(), "a")
    assert visible_layout(forest, collapsed) != visible_layout(forest)

    collapsed = toggle_collapsed(collapsed, "a")
    assert collapsed == frozenset()
    assert visible_layout(forest, collapsed) == flatten_comment_tree(forest)


def test_collapsed_ids_not_in_tree_are_ignored():
    forest = [make("a", make("b"))]
    assert visible_layout(forest, {"ghost"}) == flatten_comment_tree(forest)
