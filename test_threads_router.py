"""
Tests for the /threads HTTP endpoints
"""

from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def comment(id, *replies, reactions=None):
    return {
        "id": id,
        "author": "Ann",
        "created_at": "now",
        "body": id,
        "reactions": reactions or {},
        "replies": list(replies),
    }


def test_health_endpoints():
    assert client.get("/").json()["status"] == "healthy"
    response = client.get("/health")
    assert response.status_code == 200
    assert "X-Process-Time" in response.headers


def test_reaction_options_in_display_order():
    response = client.get("/threads/reactions/options")
    assert response.status_code == 200
    ids = [option["id"] for option in response.json()]
    assert ids[:3] == ["like", "dislike", "laugh"]
    assert len(ids) == 9


def test_layout_with_collapse():
    payload = {
        "comments": [comment("a", comment("b", comment("c")), comment("d")), comment("e")],
        "collapsed_ids": ["b"],
    }
    response = client.post("/threads/layout", json=payload)
    assert response.status_code == 200

    body = response.json()
    assert body["total"] == 5
    assert body["visible"] == 4
    rows = {row["comment"]["id"]: row for row in body["rows"]}
    assert list(rows) == ["a", "b", "d", "e"]
    assert rows["b"]["is_collapsed"] is True
    assert rows["b"]["descendant_count"] == 1
    assert rows["b"]["ancestor_has_more_siblings"] == [True]
    assert rows["d"]["parent_id"] == "a"
    assert "replies" not in rows["a"]["comment"]
    assert rows["a"]["comment"]["reactions"]["like"] == 0


def test_apply_reaction_switch():
    payload = {"reactions": {"like": 2}, "user_reaction": "like", "reaction": "love"}
    response = client.post("/threads/reactions/apply", json=payload)
    assert response.status_code == 200

    body = response.json()
    assert body["reactions"]["like"] == 1
    assert body["reactions"]["love"] == 1
    assert body["user_reaction"] == "love"


def test_apply_reaction_clear():
    payload = {"reactions": {"sad": 1}, "user_reaction": "sad", "reaction": ""}
    body = client.post("/threads/reactions/apply", json=payload).json()
    assert body["reactions"]["sad"] == 0
    assert body["user_reaction"] is None


def test_unknown_reaction_is_a_400():
    payload = {"reactions": {}, "reaction": "meh"}
    response = client.post("/threads/reactions/apply", json=payload)
    assert response.status_code == 400
    assert response.json()["type"] == "validation_error"


def test_reconcile_preserves_local_on_empty_fetch():
    local = [{"id": "post-1", "feed_id": "f1", "author": "You", "created_at": "Just now", "body": "x"}]
    body = client.post("/threads/posts/reconcile", json={"local": local, "fetched": []}).json()
    assert body["preserved_local"] is True
    assert [p["id"] for p in body["posts"]] == ["post-1"]

    fetched = [{"id": "p9", "feed_id": "f1", "author": "Garden", "created_at": "now", "body": "y"}]
    body = client.post(
        "/threads/posts/reconcile", json={"local": local, "fetched": fetched}
    ).json()
    assert body["preserved_local"] is False
    assert [p["id"] for p in body["posts"]] == ["p9"]


def test_malformed_layout_request_is_a_422():
    response = client.post("/threads/layout", json={"comments": [{"id": "x"}]})
    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


def test_request_id_is_echoed_or_generated():
    echoed = client.get("/", headers={"X-Request-ID": "trace-123"})
    assert echoed.headers["X-Request-ID"] == "trace-123"

    first = client.get("/").headers["X-Request-ID"]
    second = client.get("/").headers["X-Request-ID"]
    assert first and second and first != second


def test_validation_errors_name_the_field():
    response = client.post("/threads/layout", json={"comments": [{"id": "x"}]})
    fields = {detail["field"] for detail in response.json()["details"]}
    assert "body.comments.0.author" in fields


def test_reconcile_endpoint_is_rate_limited():
    route = next(r for r in app.routes if getattr(r, "path", "") == "/threads/posts/reconcile")
    assert route.endpoint.__name__ == "reconcile_posts_endpoint"
    statuses = [
        client.post("/threads/posts/reconcile", json={"local": [], "fetched": []}).status_code
        for _ in range(61)
    ]
    assert statuses[0] == 200
    assert statuses[-1] == 429
