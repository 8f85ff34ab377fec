# feeds/services/tree_layout.py
"""
Flatten a comment forest into render-ready rows.

Rows come out in depth-first pre-order, matching sibling order exactly. Each
row records, for every ancestor depth, whether that ancestor still has
siblings below it; those are the columns where a vertical connector line
continues past the row.
"""

from typing import List, Optional, Sequence

from feeds.schemas.feeds import CommentNode, LayoutRecord


def flatten_comment_tree(
    comments: Sequence[CommentNode],
    depth: int = 0,
    ancestor_has_more_siblings: Sequence[bool] = (),
    parent_id: Optional[str] = None,
) -> List[LayoutRecord]:
    result: List[LayoutRecord] = []
    last_index = len(comments) - 1

    for index, comment in enumerate(comments):
        is_last_sibling = index == last_index
        has_children = len(comment.replies) > 0

        result.append(
            LayoutRecord(
                comment=comment,
                depth=depth,
                ancestor_has_more_siblings=list(ancestor_has_more_siblings),
                is_last_sibling=is_last_sibling,
                has_children=has_children,
                parent_id=parent_id,
            )
        )

        if has_children:
            # This comment's own "more siblings below" flag becomes a column for its subtree
            result.extend(
                flatten_comment_tree(
                    comment.replies,
                    depth + 1,
                    [*ancestor_has_more_siblings, not is_last_sibling],
                    comment.id,
                )
            )

    return result


def continuation_columns(record: LayoutRecord) -> List[int]:
    """Depth indices at which a vertical continuation line is drawn for this row"""
    return [d for d, more in enumerate(record.ancestor_has_more_siblings) if more]
