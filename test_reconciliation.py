"""
Tests for merging refreshed posts and optimistic subscription toggles
"""

from feeds.schemas.feeds import FeedSummary, Post
from feeds.services.reconciliation import (
    apply_subscription_toggle,
    reconcile_feed_posts,
    reconcile_posts,
    replace_post_id,
    rollback_subscription,
)


def post(id, feed_id="f1"):
    return Post(id=id, feed_id=feed_id, author="You", created_at="Just now", body=id)


def feed(id, **kwargs):
    return FeedSummary(id=id, name=id.upper(), **kwargs)


def test_non_empty_fetch_replaces_local():
    local = [post("local-1")]
    fetched = [post("p1"), post("p2")]
    assert [p.id for p in reconcile_posts(local, fetched)] == ["p1", "p2"]


def test_empty_fetch_preserves_local():
    local = [post("local-1")]
    assert reconcile_posts(local, []) is local


def test_empty_fetch_without_local_is_empty():
    assert reconcile_posts([], []) == []


def test_reconcile_feed_posts_shares_dict_when_preserved():
    posts_by_feed = {"f1": [post("local-1")], "f2": [post("x", "f2")]}
    assert reconcile_feed_posts(posts_by_feed, "f1", []) is posts_by_feed

    merged = reconcile_feed_posts(posts_by_feed, "f1", [post("p1")])
    assert [p.id for p in merged["f1"]] == ["p1"]
    assert merged["f2"] is posts_by_feed["f2"]


def test_reconcile_feed_posts_for_unknown_feed():
    merged = reconcile_feed_posts({}, "f9", [])
    assert merged == {"f9": []}


def test_replace_post_id():
    posts_by_feed = {"f1": [post("post-local"), post("p0")]}
    updated = replace_post_id(posts_by_feed, "f1", "post-local", "p42")
    assert [p.id for p in updated["f1"]] == ["p42", "p0"]
    assert updated["f1"][1] is posts_by_feed["f1"][1]
    assert replace_post_id(posts_by_feed, "f1", "post-local", "") is posts_by_feed


def test_subscribe_toggle_and_rollback():
    feeds = [feed("f1", subscribers=3), feed("f2", subscribers=1, is_subscribed=True)]
    toggled, snapshot = apply_subscription_toggle(feeds, "f1")

    assert toggled[0].is_subscribed is True
    assert toggled[0].subscribers == 4
    assert toggled[1] is feeds[1]
    assert snapshot.was_subscribed is False
    assert snapshot.subscribers == 3

    restored = rollback_subscription(toggled, snapshot)
    assert restored[0].is_subscribed is False
    assert restored[0].subscribers == 3


def test_unsubscribe_floors_subscribers_at_zero():
    feeds = [feed("f1", subscribers=0, is_subscribed=True)]
    toggled, snapshot = apply_subscription_toggle(feeds, "f1")
    assert toggled[0].is_subscribed is False
    assert toggled[0].subscribers == 0
    assert snapshot.was_subscribed is True


def test_owned_feed_cannot_be_toggled():
    feeds = [feed("mine", is_owner=True, is_subscribed=True, subscribers=2)]
    toggled, snapshot = apply_subscription_toggle(feeds, "mine")
    assert toggled is feeds
    assert snapshot is None


def test_subscribing_to_unlisted_feed_adds_placeholder():
    feeds = [feed("f1")]
    toggled, snapshot = apply_subscription_toggle(feeds, "remote")
    assert [f.id for f in toggled] == ["f1", "remote"]
    assert toggled[1].is_subscribed is True
    assert toggled[1].subscribers == 1
    assert toggled[1].name == "Loading..."
    assert snapshot.was_subscribed is False


def test_rollback_for_missing_feed_is_a_no_op():
    feeds = [feed("f1")]
    _, snapshot = apply_subscription_toggle(feeds, "f1")
    assert rollback_subscription([], snapshot) == []
