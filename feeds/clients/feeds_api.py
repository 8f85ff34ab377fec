# feeds/clients/feeds_api.py
"""
Network collaborator for the feeds engine.

``FeedsBackend`` is the narrow contract the session depends on;
``FeedsAPIClient`` implements it over HTTP with httpx.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from feeds.clients.adapters import map_feeds_to_summaries, map_posts
from feeds.core.config import settings
from feeds.core.decorator import api_exception
from feeds.schemas.feeds import FeedSummary, Post

logger = logging.getLogger(__name__)


class FeedsBackend(Protocol):
    async def fetch_posts(self, feed_id: str) -> List[Post]: ...

    async def fetch_feeds(self) -> List[FeedSummary]: ...

    async def create_post(self, feed_id: str, body: str) -> Optional[str]: ...

    async def create_comment(
        self, feed_id: str, post_id: str, body: str, parent_id: Optional[str] = None
    ) -> Optional[str]: ...

    async def react_to_post(self, feed_id: str, post_id: str, reaction: str) -> None: ...

    async def react_to_comment(
        self, feed_id: str, post_id: str, comment_id: str, reaction: str
    ) -> None: ...

    async def edit_post(self, feed_id: str, post_id: str, body: str) -> None: ...

    async def delete_post(self, feed_id: str, post_id: str) -> None: ...

    async def edit_comment(
        self, feed_id: str, post_id: str, comment_id: str, body: str
    ) -> None: ...

    async def delete_comment(self, feed_id: str, post_id: str, comment_id: str) -> None: ...

    async def subscribe(self, feed_id: str, server: Optional[str] = None) -> None: ...

    async def unsubscribe(self, feed_id: str) -> None: ...


def unwrap_data(payload: Any, context: str) -> Any:
    """Accept both ``{"data": ...}`` envelopes and bare payloads."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    logger.warning(f"[Feeds API] {context} response shape unexpected")
    return payload


class FeedsAPIClient:
    """HTTP implementation of FeedsBackend"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        token = token if token is not None else settings.feeds_api_token
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = token if token.startswith("Bearer ") else f"Bearer {token}"

        self.client = httpx.AsyncClient(
            base_url=base_url or settings.feeds_api_url,
            timeout=timeout or settings.feeds_api_timeout,
            headers=headers,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _get(self, path: str, context: str, params: Optional[Dict] = None) -> Any:
        response = await self.client.get(path, params=params)
        response.raise_for_status()
        return unwrap_data(response.json(), context)

    async def _post(self, path: str, context: str, data: Dict[str, Any]) -> Any:
        # The service expects form fields, not JSON bodies
        fields = {key: value for key, value in data.items() if value is not None}
        response = await self.client.post(path, data=fields)
        response.raise_for_status()
        if not response.content:
            return {}
        return unwrap_data(response.json(), context)

    # ==================== Reads ====================

    @api_exception("load posts")
    async def fetch_posts(self, feed_id: str) -> List[Post]:
        data = await self._get(f"{feed_id}/-/posts", "view feed") or {}
        return map_posts(data.get("posts"))

    @api_exception("load feeds")
    async def fetch_feeds(self) -> List[FeedSummary]:
        data = await self._get("-/info", "view feeds") or {}
        return map_feeds_to_summaries(data.get("feeds"))

    # ==================== Posts ====================

    @api_exception("create post")
    async def create_post(self, feed_id: str, body: str) -> Optional[str]:
        data = await self._post(
            f"{feed_id}/-/post/create", "create post", {"feed": feed_id, "body": body}
        )
        # Older services answer with "post" instead of "id"
        return (data or {}).get("id") or (data or {}).get("post")

    @api_exception("react to post")
    async def react_to_post(self, feed_id: str, post_id: str, reaction: str) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/react",
            "react to post",
            {"post": post_id, "reaction": reaction},
        )

    @api_exception("edit post")
    async def edit_post(self, feed_id: str, post_id: str, body: str) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/edit",
            "edit post",
            {"feed": feed_id, "post": post_id, "body": body},
        )

    @api_exception("delete post")
    async def delete_post(self, feed_id: str, post_id: str) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/delete",
            "delete post",
            {"feed": feed_id, "post": post_id},
        )

    # ==================== Comments ====================

    @api_exception("create comment")
    async def create_comment(
        self, feed_id: str, post_id: str, body: str, parent_id: Optional[str] = None
    ) -> Optional[str]:
        data = await self._post(
            f"{feed_id}/-/{post_id}/comment/create",
            "create comment",
            {"feed": feed_id, "post": post_id, "body": body, "parent": parent_id},
        )
        return (data or {}).get("id")

    @api_exception("react to comment")
    async def react_to_comment(
        self, feed_id: str, post_id: str, comment_id: str, reaction: str
    ) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/comment/react",
            "react to comment",
            {"comment": comment_id, "reaction": reaction},
        )

    @api_exception("edit comment")
    async def edit_comment(
        self, feed_id: str, post_id: str, comment_id: str, body: str
    ) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/{comment_id}/edit",
            "edit comment",
            {"feed": feed_id, "post": post_id, "comment": comment_id, "body": body},
        )

    @api_exception("delete comment")
    async def delete_comment(self, feed_id: str, post_id: str, comment_id: str) -> None:
        await self._post(
            f"{feed_id}/-/{post_id}/{comment_id}/delete",
            "delete comment",
            {"feed": feed_id, "post": post_id, "comment": comment_id},
        )

    # ==================== Subscriptions ====================

    @api_exception("subscribe to feed")
    async def subscribe(self, feed_id: str, server: Optional[str] = None) -> None:
        await self._post(
            f"{feed_id}/-/subscribe", "subscribe to feed", {"feed": feed_id, "server": server}
        )

    @api_exception("unsubscribe from feed")
    async def unsubscribe(self, feed_id: str) -> None:
        await self._post(f"{feed_id}/-/unsubscribe", "unsubscribe from feed", {"feed": feed_id})
