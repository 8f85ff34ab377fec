# feeds/services/visibility.py
"""
Collapse/expand filtering and the per-discussion view context.

Collapsing is a view-level filter only: the full tree is always kept, so
expanding again restores every row without refetching.
"""

from typing import AbstractSet, Dict, FrozenSet, List, Optional, Sequence

from feeds.schemas.feeds import CommentNode, LayoutRecord, ViewContext
from feeds.services.comment_tree import count_descendants, iter_comments
from feeds.services.tree_layout import flatten_comment_tree


def toggle_collapsed(collapsed_ids: AbstractSet[str], comment_id: str) -> FrozenSet[str]:
    if comment_id in collapsed_ids:
        return frozenset(collapsed_ids) - {comment_id}
    return frozenset(collapsed_ids) | {comment_id}


def filter_visible(
    records: Sequence[LayoutRecord], collapsed_ids: AbstractSet[str]
) -> List[LayoutRecord]:
    """Drop every strict descendant of a collapsed row.

    ``records`` must be in pre-order, so a collapsed row's descendants are
    exactly the rows that follow it with a greater depth.
    """
    if not collapsed_ids:
        return list(records)

    visible: List[LayoutRecord] = []
    hidden_below: Optional[int] = None

    for record in records:
        if hidden_below is not None:
            if record.depth > hidden_below:
                continue
            hidden_below = None
        visible.append(record)
        if record.comment.id in collapsed_ids:
            hidden_below = record.depth

    return visible


def descendant_counts(comments: Sequence[CommentNode]) -> Dict[str, int]:
    return {comment.id: count_descendants(comment) for comment in iter_comments(comments)}


def visible_layout(
    comments: Sequence[CommentNode], collapsed_ids: AbstractSet[str] = frozenset()
) -> List[LayoutRecord]:
    return filter_visible(flatten_comment_tree(comments), collapsed_ids)


# ==================== View Context ====================


def toggle_collapse(context: ViewContext, comment_id: str) -> ViewContext:
    return context.model_copy(
        update={"collapsed_ids": toggle_collapsed(context.collapsed_ids, comment_id)}
    )


def start_reply(context: ViewContext, post_id: str, comment_id: str) -> ViewContext:
    return context.model_copy(
        update={"reply_target": (post_id, comment_id), "reply_draft": ""}
    )


def cancel_reply(context: ViewContext) -> ViewContext:
    return context.model_copy(update={"reply_target": None, "reply_draft": ""})


def set_reply_draft(context: ViewContext, value: str) -> ViewContext:
    return context.model_copy(update={"reply_draft": value})


def set_comment_draft(context: ViewContext, post_id: str, value: str) -> ViewContext:
    return context.model_copy(
        update={"comment_drafts": {**context.comment_drafts, post_id: value}}
    )


def is_replying(context: ViewContext, post_id: str, comment_id: str) -> bool:
    return context.reply_target == (post_id, comment_id)
