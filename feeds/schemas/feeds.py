# feeds/schemas/feeds.py
from typing import Dict, FrozenSet, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feeds.schemas.reactions import ReactionKind
from feeds.services.reactions import create_reaction_counts

# ==================== Comment Schemas ====================


class CommentNode(BaseModel):
    """A comment and its ordered replies. Updates go through model_copy."""

    model_config = ConfigDict(frozen=True)

    id: str
    author: str
    avatar: Optional[str] = None
    created_at: str
    body: str
    reactions: Dict[ReactionKind, int] = Field(default_factory=create_reaction_counts)
    user_reaction: Optional[ReactionKind] = None
    replies: List["CommentNode"] = []

    @field_validator("reactions", mode="before")
    def fill_reactions(cls, v):
        return create_reaction_counts(v) if v is None or isinstance(v, Mapping) else v


class CommentRowInfo(BaseModel):
    """A comment without its replies, as rendered in one layout row"""

    id: str
    author: str
    avatar: Optional[str] = None
    created_at: str
    body: str
    reactions: Dict[ReactionKind, int]
    user_reaction: Optional[ReactionKind] = None


# ==================== Post Schemas ====================


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    size: int = 0
    type: str = ""
    created: int = 0
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class Post(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    feed_id: str
    feed_name: Optional[str] = None
    title: str = ""
    author: str
    avatar: Optional[str] = None
    created_at: str
    body: str
    attachments: List[Attachment] = []
    reactions: Dict[ReactionKind, int] = Field(default_factory=create_reaction_counts)
    user_reaction: Optional[ReactionKind] = None
    comments: List[CommentNode] = []
    feed_fingerprint: Optional[str] = None

    @field_validator("reactions", mode="before")
    def fill_reactions(cls, v):
        return create_reaction_counts(v) if v is None or isinstance(v, Mapping) else v


# ==================== Feed Schemas ====================


class FeedSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    tags: List[str] = []
    owner: str = ""
    subscribers: int = Field(default=0, ge=0)
    unread_posts: int = 0
    last_active: str = ""
    is_subscribed: bool = False
    is_owner: bool = False
    fingerprint: Optional[str] = None
    server: Optional[str] = None


# ==================== Layout Schemas ====================


class LayoutRecord(BaseModel):
    """One render-ready row of a flattened discussion.

    ``ancestor_has_more_siblings[d]`` is True when the ancestor at depth ``d``
    still has siblings below it, i.e. a vertical connector runs past this row.
    """

    model_config = ConfigDict(frozen=True)

    comment: CommentNode
    depth: int
    ancestor_has_more_siblings: List[bool]
    is_last_sibling: bool
    has_children: bool
    parent_id: Optional[str] = None


class ViewContext(BaseModel):
    """Client-local view state for one discussion. Never persisted or sent."""

    model_config = ConfigDict(frozen=True)

    collapsed_ids: FrozenSet[str] = frozenset()
    comment_drafts: Dict[str, str] = {}
    # (post_id, comment_id) being replied to
    reply_target: Optional[Tuple[str, str]] = None
    reply_draft: str = ""


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal["success", "error"]
    message: str


# ==================== Request / Response Schemas ====================


class ThreadLayoutRequest(BaseModel):
    comments: List[CommentNode] = []
    collapsed_ids: List[str] = []


class ThreadRowResponse(BaseModel):
    comment: CommentRowInfo
    depth: int
    ancestor_has_more_siblings: List[bool]
    is_last_sibling: bool
    has_children: bool
    parent_id: Optional[str] = None
    is_collapsed: bool = False
    descendant_count: int = 0


class ThreadLayoutResponse(BaseModel):
    rows: List[ThreadRowResponse]
    total: int
    visible: int


class ReconcilePostsRequest(BaseModel):
    local: List[Post] = []
    fetched: List[Post] = []


class ReconcilePostsResponse(BaseModel):
    posts: List[Post]
    preserved_local: bool
