# feeds/services/comment_tree.py
"""
Pure operations over a post's comment forest.

Every rewrite rebuilds only the reply lists on the path from the root to the
touched node; all other subtrees are returned by reference. When the target id
is absent the input list itself is returned, so ``result is comments`` tells
the caller nothing changed.
"""

import secrets
from typing import Callable, Iterator, List, Optional

from feeds.core import constants
from feeds.core.config import settings
from feeds.schemas.feeds import CommentNode
from feeds.services.reactions import create_reaction_counts

Comments = List[CommentNode]
Updater = Callable[[CommentNode], CommentNode]


def random_id(prefix: str) -> str:
    """Locally generated id for an optimistic entry, e.g. ``comment-9f1c2a7e``"""
    return f"{prefix}-{secrets.token_hex(settings.local_id_bytes)}"


def new_comment(
    body: str,
    author: str = constants.AUTHOR_YOU,
    prefix: str = "comment",
    avatar: Optional[str] = None,
) -> CommentNode:
    return CommentNode(
        id=random_id(prefix),
        author=author,
        avatar=avatar,
        created_at=constants.JUST_NOW,
        body=body,
        reactions=create_reaction_counts(),
        user_reaction=None,
        replies=[],
    )


def update_comment_tree(comments: Comments, target_id: str, updater: Updater) -> Comments:
    changed = False
    updated: Comments = []

    for comment in comments:
        if comment.id == target_id:
            changed = True
            updated.append(updater(comment))
            continue
        if comment.replies:
            replies = update_comment_tree(comment.replies, target_id, updater)
            if replies is not comment.replies:
                changed = True
                updated.append(comment.model_copy(update={"replies": replies}))
                continue
        updated.append(comment)

    return updated if changed else comments


def insert_reply(comments: Comments, parent_id: str, reply: CommentNode) -> Comments:
    """Append ``reply`` as the newest child of ``parent_id``."""
    return update_comment_tree(
        comments,
        parent_id,
        lambda parent: parent.model_copy(update={"replies": [*parent.replies, reply]}),
    )


def prepend_comment(comments: Comments, comment: CommentNode) -> Comments:
    """New top-level comments are shown first."""
    return [comment, *comments]


def remove_comment(comments: Comments, target_id: str) -> Comments:
    """Delete ``target_id`` together with all of its descendants."""
    changed = False
    updated: Comments = []

    for comment in comments:
        if comment.id == target_id:
            changed = True
            continue
        if comment.replies:
            replies = remove_comment(comment.replies, target_id)
            if replies is not comment.replies:
                changed = True
                updated.append(comment.model_copy(update={"replies": replies}))
                continue
        updated.append(comment)

    return updated if changed else comments


def edit_comment_body(comments: Comments, target_id: str, body: str) -> Comments:
    return update_comment_tree(
        comments, target_id, lambda comment: comment.model_copy(update={"body": body})
    )


def count_descendants(comment: CommentNode) -> int:
    total = len(comment.replies)
    for reply in comment.replies:
        total += count_descendants(reply)
    return total


def iter_comments(comments: Comments) -> Iterator[CommentNode]:
    """Pre-order walk of the forest"""
    for comment in comments:
        yield comment
        yield from iter_comments(comment.replies)


def iter_comment_ids(comments: Comments) -> Iterator[str]:
    for comment in iter_comments(comments):
        yield comment.id


def find_comment(comments: Comments, target_id: str) -> Optional[CommentNode]:
    for comment in iter_comments(comments):
        if comment.id == target_id:
            return comment
    return None
