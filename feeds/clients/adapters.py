# feeds/clients/adapters.py
"""
Map raw feeds-service payloads onto the engine's models.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from feeds.core import constants
from feeds.schemas.feeds import Attachment, CommentNode, FeedSummary, Post
from feeds.services.reactions import count_reactions, is_reaction_kind


def format_timestamp(timestamp: Optional[float] = None) -> str:
    if not timestamp:
        return constants.RECENTLY_ACTIVE
    return datetime.fromtimestamp(timestamp).strftime("%b %d, %Y, %I:%M %p")


FEED_ID_PREFIX = "feeds/"


def strip_feed_prefix(feed_id: Any) -> str:
    """``feeds/abc`` and ``abc`` name the same feed"""
    feed_id = str(feed_id or "")
    if feed_id.startswith(FEED_ID_PREFIX):
        return feed_id[len(FEED_ID_PREFIX) :]
    return feed_id


def _user_reaction(value: Any) -> Optional[str]:
    return value if is_reaction_kind(value) else None


def _entity(feed: Dict[str, Any]) -> Dict[str, Any]:
    entity = feed.get("entity")
    return entity if isinstance(entity, dict) else {}


def derive_description(feed: Dict[str, Any]) -> str:
    description = _entity(feed).get("description")
    if isinstance(description, str) and description.strip():
        return description
    return f"Updates from {feed.get('fingerprint') or feed.get('name')}"


def derive_tags(feed: Dict[str, Any]) -> List[str]:
    tags = _entity(feed).get("tags")
    if isinstance(tags, list):
        return [tag for tag in tags if isinstance(tag, str)]
    return []


def derive_title(body: Optional[str], fallback: Optional[str] = None) -> str:
    """First line of the body, truncated, or the fallback name"""
    if body and body.strip():
        first_line = body.strip().split("\n")[0]
        if len(first_line) > constants.TITLE_MAX_LENGTH:
            return first_line[: constants.TITLE_MAX_LENGTH] + constants.ELLIPSIS
        return first_line
    return fallback or constants.FEED_UPDATE


def map_comment(comment: Dict[str, Any]) -> CommentNode:
    return CommentNode(
        id=str(comment["id"]),
        author=comment.get("name") or constants.AUTHOR_SUBSCRIBER,
        avatar=None,
        created_at=comment.get("created_string") or format_timestamp(comment.get("created")),
        body=comment.get("body_markdown") or comment.get("body") or "",
        reactions=count_reactions(comment.get("reactions"), comment.get("my_reaction")),
        user_reaction=_user_reaction(comment.get("my_reaction")),
        replies=[map_comment(child) for child in comment.get("children") or []],
    )


def _map_attachments(attachments: Optional[Iterable[Dict[str, Any]]]) -> List[Attachment]:
    return [Attachment(**attachment) for attachment in attachments or []]


def map_posts(posts: Optional[List[Dict[str, Any]]] = None) -> List[Post]:
    if not posts:
        return []

    return [
        Post(
            id=str(post["id"]),
            feed_id=strip_feed_prefix(post.get("feed")),
            feed_name=post.get("feed_name"),
            title=derive_title(post.get("body"), post.get("feed_name")),
            author=post.get("feed_name") or constants.AUTHOR_FEED_OWNER,
            created_at=post.get("created_string") or format_timestamp(post.get("created")),
            body=post.get("body_markdown") or post.get("body") or "",
            attachments=_map_attachments(post.get("attachments")),
            reactions=count_reactions(post.get("reactions"), post.get("my_reaction")),
            user_reaction=_user_reaction(post.get("my_reaction")),
            comments=[map_comment(comment) for comment in post.get("comments") or []],
            feed_fingerprint=post.get("feed_fingerprint"),
        )
        for post in posts
    ]


def map_feeds_to_summaries(
    feeds: Optional[List[Dict[str, Any]]] = None,
    subscribed_feed_ids: Optional[Set[str]] = None,
) -> List[FeedSummary]:
    if not feeds:
        return []

    summaries = []
    for feed in feeds:
        is_owner = feed.get("owner") == 1
        raw_id = str(feed["id"])
        feed_id = strip_feed_prefix(raw_id)
        # The service's own flag wins; without a subscription set every
        # listed feed counts as subscribed
        if feed.get("isSubscribed") is not None:
            is_subscribed = bool(feed["isSubscribed"])
        elif subscribed_feed_ids is not None:
            is_subscribed = (
                raw_id in subscribed_feed_ids or feed_id in subscribed_feed_ids or is_owner
            )
        else:
            is_subscribed = True

        summaries.append(
            FeedSummary(
                id=feed_id,
                name=feed.get("name") or feed.get("fingerprint") or "",
                description=derive_description(feed),
                tags=derive_tags(feed),
                owner=constants.AUTHOR_YOU if is_owner else constants.AUTHOR_SUBSCRIBED_FEED,
                subscribers=max(0, int(feed.get("subscribers") or 0)),
                unread_posts=0,
                last_active=format_timestamp(feed.get("updated")),
                is_subscribed=is_subscribed,
                is_owner=is_owner,
                fingerprint=feed.get("fingerprint"),
                server=feed.get("server"),
            )
        )
    return summaries
