# feeds/services/feed_session.py
"""
Client-side feed state and the imperative entry points the presentation
layer calls.

Every action applies its optimistic mutation synchronously and only then
schedules the network call as an asyncio task, which is returned so callers
may await it. Completions arriving after ``close()`` are discarded.
"""

import asyncio
import logging
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from feeds.clients.adapters import derive_title
from feeds.clients.feeds_api import FeedsBackend
from feeds.core import constants
from feeds.core.decorator import FeedsException, FeedsValidationError
from feeds.schemas.feeds import (
    CommentNode,
    FeedSummary,
    LayoutRecord,
    Notification,
    Post,
    ViewContext,
)
from feeds.services import visibility
from feeds.services.comment_tree import (
    edit_comment_body,
    find_comment,
    insert_reply,
    iter_comment_ids,
    new_comment,
    prepend_comment,
    random_id,
    remove_comment,
    update_comment_tree,
)
from feeds.services.reactions import (
    ReactionCounts,
    apply_reaction,
    create_reaction_counts,
    reaction_input,
)
from feeds.services.reconciliation import (
    PostsByFeed,
    SubscriptionSnapshot,
    apply_subscription_toggle,
    find_feed,
    reconcile_feed_posts,
    replace_post_id,
    rollback_subscription,
    update_feed_posts,
    update_post,
)

logger = logging.getLogger(__name__)


class ThreadView(NamedTuple):
    rows: List[LayoutRecord]
    descendant_counts: Dict[str, int]
    collapsed_ids: frozenset


class FeedSession:
    def __init__(
        self,
        backend: FeedsBackend,
        feeds: Optional[List[FeedSummary]] = None,
        posts_by_feed: Optional[PostsByFeed] = None,
        author: str = constants.AUTHOR_YOU,
    ):
        self.backend = backend
        self.author = author
        self.feeds: List[FeedSummary] = list(feeds or [])
        self.posts_by_feed: PostsByFeed = dict(posts_by_feed or {})
        self.view_contexts: Dict[str, ViewContext] = {}
        self.notifications: List[Notification] = []
        self.error_message: Optional[str] = None
        self.loading_feed_id: Optional[str] = None
        self.loaded_feeds: Set[str] = set()
        self.alive = True
        self._tasks: Set[asyncio.Task] = set()

    # ==================== Lifecycle ====================

    def close(self):
        """Mark the session dead; late network completions leave state untouched."""
        self.alive = False

    async def wait_idle(self):
        """Await every scheduled network task, including ones they schedule"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _dispatch(self, coro, label: str) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(f"[Feeds] No running event loop, skipped network call: {label}")
            return None

        task = loop.create_task(coro, name=f"feeds:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ==================== Notifications ====================

    def _notify(self, level: str, message: str):
        self.notifications.append(Notification(level=level, message=message))

    def dismiss_notification(self, index: int = 0):
        if 0 <= index < len(self.notifications):
            del self.notifications[index]

    # ==================== Lookups & validation ====================

    def posts(self, feed_id: str) -> List[Post]:
        return self.posts_by_feed.get(feed_id, [])

    def find_post(self, feed_id: str, post_id: str) -> Optional[Post]:
        for post in self.posts(feed_id):
            if post.id == post_id:
                return post
        return None

    def _require_post(self, feed_id: str, post_id: str) -> Post:
        post = self.find_post(feed_id, post_id)
        if post is None:
            raise FeedsValidationError("Post not found")
        return post

    def _require_comment(self, post: Post, comment_id: str) -> CommentNode:
        comment = find_comment(post.comments, comment_id)
        if comment is None:
            raise FeedsValidationError("Comment not found")
        return comment

    @staticmethod
    def _require_body(body: Optional[str], what: str) -> str:
        body = (body or "").strip()
        if not body:
            raise FeedsValidationError(f"{what} cannot be empty")
        return body

    def _new_comment_for(self, post: Post, body: str, prefix: str) -> CommentNode:
        existing = set(iter_comment_ids(post.comments))
        comment = new_comment(body, author=self.author, prefix=prefix)
        while comment.id in existing:
            comment = comment.model_copy(update={"id": random_id(prefix)})
        return comment

    def _update_post(self, feed_id: str, post_id: str, updater):
        self.posts_by_feed = update_feed_posts(
            self.posts_by_feed, feed_id, lambda posts: update_post(posts, post_id, updater)
        )

    def _update_comments(self, feed_id: str, post_id: str, rewrite):
        self._update_post(
            feed_id,
            post_id,
            lambda post: post.model_copy(update={"comments": rewrite(post.comments)}),
        )

    def _touch_feed(self, feed_id: str, new_post: bool = False):
        updated = []
        for feed in self.feeds:
            if feed.id == feed_id:
                changes = {"last_active": constants.JUST_NOW}
                if new_post:
                    changes["unread_posts"] = feed.unread_posts + 1
                feed = feed.model_copy(update=changes)
            updated.append(feed)
        self.feeds = updated
        # The next visit must refetch this feed
        self.loaded_feeds.discard(feed_id)

    # ==================== Loading ====================

    async def load_posts(self, feed_id: str):
        self.loading_feed_id = feed_id
        try:
            fetched = await self.backend.fetch_posts(feed_id)
            if not self.alive:
                return
            self.posts_by_feed = reconcile_feed_posts(self.posts_by_feed, feed_id, fetched)
            self.loaded_feeds.add(feed_id)
            self.error_message = None
        except FeedsException as e:
            if not self.alive:
                return
            logger.error(f"[Feeds] Failed to load posts for {feed_id}: {e.message}")
            self.error_message = constants.ERROR_LOAD_POSTS_FAILED
            self._notify("error", constants.ERROR_LOAD_POSTS_FAILED)
        finally:
            if self.alive and self.loading_feed_id == feed_id:
                self.loading_feed_id = None

    def ensure_posts(self, feed_id: str) -> Optional[asyncio.Task]:
        """Load a feed's posts unless they were already loaded since its last change."""
        if not feed_id or feed_id in self.loaded_feeds:
            return None
        return self._dispatch(self.load_posts(feed_id), "load posts")

    async def refresh_feeds(self):
        try:
            fetched = await self.backend.fetch_feeds()
        except FeedsException as e:
            if not self.alive:
                return
            logger.error(f"[Feeds] Failed to refresh feeds: {e.message}")
            self.error_message = constants.ERROR_SYNC_FAILED
            self._notify("error", constants.ERROR_SYNC_FAILED)
            return
        if not self.alive:
            return
        if fetched:
            self.feeds = list(fetched)

    # ==================== Posts ====================

    def create_post(self, feed_id: str, body: str) -> Optional[asyncio.Task]:
        feed = find_feed(self.feeds, feed_id)
        if feed is None or not feed.is_owner:
            raise FeedsValidationError("Posts can only be created in feeds you own")
        body = self._require_body(body, "Post")

        post = Post(
            id=random_id("post"),
            feed_id=feed_id,
            feed_name=feed.name,
            title=derive_title(body),
            author=self.author,
            created_at=constants.JUST_NOW,
            body=body,
            reactions=create_reaction_counts(),
            user_reaction=None,
            comments=[],
        )
        self.posts_by_feed = {
            **self.posts_by_feed,
            feed_id: [post, *self.posts(feed_id)],
        }
        self._touch_feed(feed_id, new_post=True)

        return self._dispatch(self._send_post(feed_id, post.id, body), "create post")

    async def _send_post(self, feed_id: str, local_id: str, body: str):
        try:
            server_id = await self.backend.create_post(feed_id, body)
        except FeedsException as e:
            if self.alive:
                logger.error(f"[Feeds] Failed to create post: {e.message}")
                self._notify("error", constants.POST_FAILED)
            return
        if not self.alive:
            return
        if server_id:
            self.posts_by_feed = replace_post_id(self.posts_by_feed, feed_id, local_id, server_id)
        await self.load_posts(feed_id)

    def edit_post(self, feed_id: str, post_id: str, body: str) -> Optional[asyncio.Task]:
        self._require_post(feed_id, post_id)
        body = self._require_body(body, "Post")
        self._update_post(
            feed_id,
            post_id,
            lambda post: post.model_copy(update={"body": body, "title": derive_title(body)}),
        )
        return self._dispatch(
            self._send_change(
                lambda: self.backend.edit_post(feed_id, post_id, body),
                feed_id,
                constants.POST_UPDATED,
                constants.POST_UPDATE_FAILED,
            ),
            "edit post",
        )

    def delete_post(self, feed_id: str, post_id: str) -> Optional[asyncio.Task]:
        self._require_post(feed_id, post_id)
        self.posts_by_feed = {
            **self.posts_by_feed,
            feed_id: [post for post in self.posts(feed_id) if post.id != post_id],
        }
        self.view_contexts.pop(post_id, None)
        return self._dispatch(
            self._send_change(
                lambda: self.backend.delete_post(feed_id, post_id),
                feed_id,
                constants.POST_DELETED,
                constants.POST_DELETE_FAILED,
            ),
            "delete post",
        )

    async def _send_change(self, call, feed_id: str, success: str, failure: str):
        """Run an edit/delete call, then refresh. Failures keep the local change."""
        try:
            await call()
        except FeedsException as e:
            if self.alive:
                logger.error(f"[Feeds] {failure}: {e.message}")
                self._notify("error", failure)
            return
        if not self.alive:
            return
        self._notify("success", success)
        await self.load_posts(feed_id)

    # ==================== Comments ====================

    def add_comment(
        self, feed_id: str, post_id: str, body: Optional[str] = None
    ) -> Optional[asyncio.Task]:
        """Add a top-level comment; ``body`` defaults to the post's draft."""
        post = self._require_post(feed_id, post_id)
        if body is None:
            body = self.view_context(post_id).comment_drafts.get(post_id, "")
        body = self._require_body(body, "Comment")

        comment = self._new_comment_for(post, body, "comment")
        self._update_comments(
            feed_id, post_id, lambda comments: prepend_comment(comments, comment)
        )
        self._set_view_context(
            post_id, visibility.set_comment_draft(self.view_context(post_id), post_id, "")
        )
        self._touch_feed(feed_id)

        return self._dispatch(
            self._send_comment(feed_id, post_id, body, None, constants.COMMENT_FAILED),
            "create comment",
        )

    def reply_to_comment(
        self, feed_id: str, post_id: str, parent_id: str, body: Optional[str] = None
    ) -> Optional[asyncio.Task]:
        """Reply to ``parent_id``; ``body`` defaults to the open reply draft."""
        post = self._require_post(feed_id, post_id)
        self._require_comment(post, parent_id)
        context = self.view_context(post_id)
        if body is None and visibility.is_replying(context, post_id, parent_id):
            body = context.reply_draft
        body = self._require_body(body, "Reply")

        reply = self._new_comment_for(post, body, "reply")
        self._update_comments(
            feed_id, post_id, lambda comments: insert_reply(comments, parent_id, reply)
        )
        self._set_view_context(post_id, visibility.cancel_reply(context))
        self._touch_feed(feed_id)

        return self._dispatch(
            self._send_comment(feed_id, post_id, body, parent_id, constants.REPLY_FAILED),
            "create reply",
        )

    async def _send_comment(
        self,
        feed_id: str,
        post_id: str,
        body: str,
        parent_id: Optional[str],
        failure: str,
    ):
        try:
            await self.backend.create_comment(feed_id, post_id, body, parent_id)
        except FeedsException as e:
            if self.alive:
                logger.error(f"[Feeds] Failed to create comment on {post_id}: {e.message}")
                self._notify("error", failure)
            return
        if not self.alive:
            return
        await self.load_posts(feed_id)

    def edit_comment(
        self, feed_id: str, post_id: str, comment_id: str, body: str
    ) -> Optional[asyncio.Task]:
        post = self._require_post(feed_id, post_id)
        self._require_comment(post, comment_id)
        body = self._require_body(body, "Comment")
        self._update_comments(
            feed_id, post_id, lambda comments: edit_comment_body(comments, comment_id, body)
        )
        return self._dispatch(
            self._send_change(
                lambda: self.backend.edit_comment(feed_id, post_id, comment_id, body),
                feed_id,
                constants.COMMENT_UPDATED,
                constants.COMMENT_UPDATE_FAILED,
            ),
            "edit comment",
        )

    def delete_comment(
        self, feed_id: str, post_id: str, comment_id: str
    ) -> Optional[asyncio.Task]:
        post = self._require_post(feed_id, post_id)
        self._require_comment(post, comment_id)
        self._update_comments(
            feed_id, post_id, lambda comments: remove_comment(comments, comment_id)
        )
        return self._dispatch(
            self._send_change(
                lambda: self.backend.delete_comment(feed_id, post_id, comment_id),
                feed_id,
                constants.COMMENT_DELETED,
                constants.COMMENT_DELETE_FAILED,
            ),
            "delete comment",
        )

    # ==================== Reactions ====================

    def react_to_post(self, feed_id: str, post_id: str, reaction) -> Optional[asyncio.Task]:
        post = self._require_post(feed_id, post_id)
        outcome = apply_reaction(post.reactions, post.user_reaction, reaction)
        self._update_post(
            feed_id,
            post_id,
            lambda current: current.model_copy(
                update={"reactions": outcome.reactions, "user_reaction": outcome.user_reaction}
            ),
        )
        return self._dispatch(
            self._send_reaction(
                lambda: self.backend.react_to_post(
                    feed_id, post_id, reaction_input(outcome.user_reaction)
                )
            ),
            "react to post",
        )

    def react_to_comment(
        self, feed_id: str, post_id: str, comment_id: str, reaction
    ) -> Optional[asyncio.Task]:
        post = self._require_post(feed_id, post_id)
        comment = self._require_comment(post, comment_id)
        outcome = apply_reaction(comment.reactions, comment.user_reaction, reaction)
        self._update_comments(
            feed_id,
            post_id,
            lambda comments: update_comment_tree(
                comments,
                comment_id,
                lambda current: current.model_copy(
                    update={
                        "reactions": outcome.reactions,
                        "user_reaction": outcome.user_reaction,
                    }
                ),
            ),
        )
        return self._dispatch(
            self._send_reaction(
                lambda: self.backend.react_to_comment(
                    feed_id, post_id, comment_id, reaction_input(outcome.user_reaction)
                )
            ),
            "react to comment",
        )

    async def _send_reaction(self, call):
        try:
            await call()
        except FeedsException as e:
            if self.alive:
                logger.error(f"[Feeds] Failed to save reaction: {e.message}")
                self._notify("error", constants.REACTION_FAILED)

    def reaction_state(
        self, feed_id: str, post_id: str, comment_id: Optional[str] = None
    ) -> Tuple[ReactionCounts, Optional[str]]:
        post = self._require_post(feed_id, post_id)
        if comment_id is None:
            return post.reactions, post.user_reaction
        comment = self._require_comment(post, comment_id)
        return comment.reactions, comment.user_reaction

    # ==================== Subscriptions ====================

    def toggle_subscription(
        self, feed_id: str, server: Optional[str] = None
    ) -> Optional[asyncio.Task]:
        if not feed_id:
            raise FeedsValidationError("Feed id is required")

        target = find_feed(self.feeds, feed_id)
        feeds, snapshot = apply_subscription_toggle(self.feeds, feed_id)
        if snapshot is None:
            logger.debug(f"[Feeds] Ignoring subscription toggle on owned feed {feed_id}")
            return None
        self.feeds = feeds

        feed_name = target.name if target and target.name else "Feed"
        server = server or (target.server if target else None)
        return self._dispatch(
            self._send_subscription(snapshot, server, feed_name), "toggle subscription"
        )

    async def _send_subscription(
        self, snapshot: SubscriptionSnapshot, server: Optional[str], feed_name: str
    ):
        try:
            if snapshot.was_subscribed:
                await self.backend.unsubscribe(snapshot.feed_id)
            else:
                await self.backend.subscribe(snapshot.feed_id, server)
        except FeedsException as e:
            if not self.alive:
                return
            logger.error(
                f"[Feeds] Failed to toggle subscription for {snapshot.feed_id}: {e.message}"
            )
            self.feeds = rollback_subscription(self.feeds, snapshot)
            self.error_message = constants.ERROR_SUBSCRIPTION_FAILED
            if snapshot.was_subscribed:
                self._notify("error", constants.unsubscribe_failed(feed_name))
            else:
                self._notify("error", constants.subscribe_failed(feed_name))
            return

        if not self.alive:
            return
        self.error_message = None
        if snapshot.was_subscribed:
            self._notify("success", constants.unsubscribed(feed_name))
        else:
            self._notify("success", constants.subscribed(feed_name))
        # Subscriber counts come back with the next feed list
        self._dispatch(self.refresh_feeds(), "refresh feeds")

    # ==================== View state ====================

    def view_context(self, post_id: str) -> ViewContext:
        return self.view_contexts.get(post_id) or ViewContext()

    def _set_view_context(self, post_id: str, context: ViewContext):
        self.view_contexts[post_id] = context

    def toggle_collapse(self, post_id: str, comment_id: str) -> ViewContext:
        context = visibility.toggle_collapse(self.view_context(post_id), comment_id)
        self._set_view_context(post_id, context)
        return context

    def set_comment_draft(self, post_id: str, value: str):
        self._set_view_context(
            post_id, visibility.set_comment_draft(self.view_context(post_id), post_id, value)
        )

    def start_reply(self, post_id: str, comment_id: str):
        self._set_view_context(
            post_id, visibility.start_reply(self.view_context(post_id), post_id, comment_id)
        )

    def set_reply_draft(self, post_id: str, value: str):
        self._set_view_context(
            post_id, visibility.set_reply_draft(self.view_context(post_id), value)
        )

    def cancel_reply(self, post_id: str):
        self._set_view_context(post_id, visibility.cancel_reply(self.view_context(post_id)))

    def thread_layout(self, feed_id: str, post_id: str) -> ThreadView:
        post = self._require_post(feed_id, post_id)
        collapsed = self.view_context(post_id).collapsed_ids
        return ThreadView(
            rows=visibility.visible_layout(post.comments, collapsed),
            descendant_counts=visibility.descendant_counts(post.comments),
            collapsed_ids=collapsed,
        )
