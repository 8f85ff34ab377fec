# feeds/core/constants.py
"""
User-facing strings for the feeds engine.
Kept in one place so notifications and placeholders stay consistent.
"""

JUST_NOW = "Just now"
RECENTLY_ACTIVE = "Recently active"
FEED_UPDATE = "Feed update"
LOADING_PLACEHOLDER = "Loading..."

# Authors
AUTHOR_YOU = "You"
AUTHOR_FEED_OWNER = "Feed Owner"
AUTHOR_SUBSCRIBER = "Subscriber"
AUTHOR_SUBSCRIBED_FEED = "Subscribed feed"

# Errors
ERROR_LOAD_POSTS_FAILED = "Unable to load posts for this feed right now."
ERROR_SYNC_FAILED = "Unable to sync with the feeds service. Showing cached data."
ERROR_SUBSCRIPTION_FAILED = "Failed to update subscription. Please try again."

# Notifications
POST_FAILED = "Failed to create post. Please try again."
COMMENT_FAILED = "Failed to add comment. Please try again."
REPLY_FAILED = "Failed to add reply. Please try again."
REACTION_FAILED = "Failed to save your reaction."
POST_UPDATED = "Post updated"
POST_UPDATE_FAILED = "Failed to edit post"
POST_DELETED = "Post deleted"
POST_DELETE_FAILED = "Failed to delete post"
COMMENT_UPDATED = "Comment updated"
COMMENT_UPDATE_FAILED = "Failed to edit comment"
COMMENT_DELETED = "Comment deleted"
COMMENT_DELETE_FAILED = "Failed to delete comment"


def subscribed(feed_name: str) -> str:
    return f"Subscribed to {feed_name}"


def unsubscribed(feed_name: str) -> str:
    return f"Unsubscribed from {feed_name}"


def subscribe_failed(feed_name: str) -> str:
    return f"Failed to subscribe to {feed_name}"


def unsubscribe_failed(feed_name: str) -> str:
    return f"Failed to unsubscribe from {feed_name}"


# Title derivation
TITLE_MAX_LENGTH = 120
ELLIPSIS = "…"
