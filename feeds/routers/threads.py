# feeds/routers/threads.py
from fastapi import APIRouter, Request

from feeds.core.limiter import limiter
from feeds.schemas.feeds import (
    ReconcilePostsRequest,
    ReconcilePostsResponse,
    ThreadLayoutRequest,
    ThreadLayoutResponse,
)
from feeds.schemas.reactions import (
    REACTION_OPTIONS,
    ApplyReactionRequest,
    ApplyReactionResponse,
)
from feeds.services.reactions import apply_reaction
from feeds.services.reconciliation import reconcile_posts
from feeds.services.tree_layout import flatten_comment_tree
from feeds.services.visibility import descendant_counts, filter_visible

router = APIRouter(
    prefix="/threads",
    tags=["Threads"],
    responses={400: {"description": "Invalid request"}},
)


@router.get("/reactions/options")
def list_reaction_options():
    """
    Reaction kinds in display order.
    """
    return [option.model_dump() for option in REACTION_OPTIONS]


@router.post("/layout", response_model=ThreadLayoutResponse)
@limiter.limit("60/minute")
def thread_layout(request: Request, payload: ThreadLayoutRequest):
    """
    Flatten a comment forest into render-ready rows.
    Descendants of collapsed comments are left out; collapsed rows carry
    the number of hidden replies.
    """
    collapsed = frozenset(payload.collapsed_ids)
    records = flatten_comment_tree(payload.comments)
    visible = filter_visible(records, collapsed)
    counts = descendant_counts(payload.comments)

    rows = []
    for record in visible:
        row = record.model_dump(exclude={"comment": {"replies"}})
        row["is_collapsed"] = record.comment.id in collapsed
        row["descendant_count"] = counts.get(record.comment.id, 0)
        rows.append(row)

    return {"rows": rows, "total": len(records), "visible": len(visible)}


@router.post("/reactions/apply", response_model=ApplyReactionResponse)
@limiter.limit("60/minute")
def apply_reaction_toggle(request: Request, payload: ApplyReactionRequest):
    """
    Toggle a reaction against the caller's current one.
    Send an empty reaction to clear.
    """
    outcome = apply_reaction(payload.reactions, payload.user_reaction, payload.reaction)
    return {
        "reactions": {kind.value: count for kind, count in outcome.reactions.items()},
        "user_reaction": outcome.user_reaction,
    }


@router.post("/posts/reconcile", response_model=ReconcilePostsResponse)
@limiter.limit("60/minute")
def reconcile_posts_endpoint(request: Request, payload: ReconcilePostsRequest):
    """
    Merge a refresh response into the posts held for one feed.
    An empty response keeps the local posts.
    """
    merged = reconcile_posts(payload.local, payload.fetched)
    return {
        "posts": merged,
        "preserved_local": not payload.fetched and bool(payload.local),
    }
