# feeds/services/reconciliation.py
"""
Merging server snapshots into locally held, possibly optimistic, state.
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from feeds.core import constants
from feeds.schemas.feeds import FeedSummary, Post

logger = logging.getLogger(__name__)

PostsByFeed = Dict[str, List[Post]]


class SubscriptionSnapshot(NamedTuple):
    """Values captured before an optimistic subscription toggle"""

    feed_id: str
    was_subscribed: bool
    subscribers: int


# ==================== Post Reconciliation ====================


def reconcile_posts(local: List[Post], fetched: List[Post]) -> List[Post]:
    """Merge one feed's refresh response into its local post list.

    A non-empty response is authoritative. An empty response while posts are
    held locally is treated as "not yet synced" and the local list is kept.
    """
    if fetched:
        return list(fetched)
    if local:
        return local
    return []


def reconcile_feed_posts(
    posts_by_feed: PostsByFeed, feed_id: str, fetched: Sequence[Post]
) -> PostsByFeed:
    existing = posts_by_feed.get(feed_id, [])
    merged = reconcile_posts(existing, list(fetched))

    if merged is existing and feed_id in posts_by_feed:
        logger.info(
            f"[Feeds] Empty refresh for feed {feed_id}, preserving {len(existing)} local posts"
        )
        return posts_by_feed

    return {**posts_by_feed, feed_id: merged}


def update_feed_posts(posts_by_feed: PostsByFeed, feed_id: str, updater) -> PostsByFeed:
    """Apply ``updater`` to one feed's post list; other feeds are shared"""
    existing = posts_by_feed.get(feed_id, [])
    updated = updater(existing)
    if updated is existing:
        return posts_by_feed
    return {**posts_by_feed, feed_id: updated}


def update_post(posts: List[Post], post_id: str, updater) -> List[Post]:
    changed = False
    updated: List[Post] = []
    for post in posts:
        if post.id == post_id:
            changed = True
            updated.append(updater(post))
        else:
            updated.append(post)
    return updated if changed else posts


def replace_post_id(
    posts_by_feed: PostsByFeed, feed_id: str, local_id: str, server_id: str
) -> PostsByFeed:
    """Swap an optimistic post's local id for the one the server assigned."""
    if not server_id or server_id == local_id:
        return posts_by_feed
    return update_feed_posts(
        posts_by_feed,
        feed_id,
        lambda posts: update_post(
            posts, local_id, lambda post: post.model_copy(update={"id": server_id})
        ),
    )


# ==================== Subscription Toggle ====================


def find_feed(feeds: Sequence[FeedSummary], feed_id: str) -> Optional[FeedSummary]:
    for feed in feeds:
        if feed.id == feed_id:
            return feed
    return None


def apply_subscription_toggle(
    feeds: List[FeedSummary], feed_id: str
) -> Tuple[List[FeedSummary], Optional[SubscriptionSnapshot]]:
    """Flip a feed's subscription optimistically.

    Returns the new list and the snapshot needed to roll back. Owned feeds
    cannot be toggled and come back unchanged with no snapshot.
    """
    target = find_feed(feeds, feed_id)
    if target is not None and target.is_owner:
        return feeds, None

    was_subscribed = target.is_subscribed if target else False
    original_subscribers = target.subscribers if target else 0
    is_subscribed = not was_subscribed
    subscribers = max(0, original_subscribers + (1 if is_subscribed else -1))

    snapshot = SubscriptionSnapshot(
        feed_id=feed_id,
        was_subscribed=was_subscribed,
        subscribers=original_subscribers,
    )

    if target is None:
        # Subscribing from a search result that is not in the list yet
        placeholder = FeedSummary(
            id=feed_id,
            name=constants.LOADING_PLACEHOLDER,
            owner=constants.AUTHOR_SUBSCRIBED_FEED,
            subscribers=subscribers,
            last_active=constants.RECENTLY_ACTIVE,
            is_subscribed=is_subscribed,
            is_owner=False,
        )
        return [*feeds, placeholder], snapshot

    updated = [
        (
            feed.model_copy(update={"is_subscribed": is_subscribed, "subscribers": subscribers})
            if feed.id == feed_id
            else feed
        )
        for feed in feeds
    ]
    return updated, snapshot


def rollback_subscription(
    feeds: List[FeedSummary], snapshot: SubscriptionSnapshot
) -> List[FeedSummary]:
    """Restore the captured pre-toggle values for the snapshot's feed."""
    if find_feed(feeds, snapshot.feed_id) is None:
        return feeds
    return [
        (
            feed.model_copy(
                update={
                    "is_subscribed": snapshot.was_subscribed,
                    "subscribers": snapshot.subscribers,
                }
            )
            if feed.id == snapshot.feed_id
            else feed
        )
        for feed in feeds
    ]
