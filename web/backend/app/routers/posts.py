"""Posts router -- publish, read, vote, poll, and report.

Prefix: ``/api/posts``

Responses are per-viewer projections and never include pseudonyms.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from anonboard.auth.models import Account
from anonboard.board import Board
from anonboard.content.models import ContentKind, ContentView
from anonboard.errors import AnonBoardError
from web.backend.app.errors import http_error
from web.backend.app.middleware.auth import get_board, get_current_account, get_optional_account
from web.backend.app.models.api import (
    CommentCreateRequest,
    ContentResponse,
    FeedResponse,
    PollResponse,
    PollVoteRequest,
    PostCreateRequest,
    ReportResponse,
    VoteRequest,
    VoteResponse,
)

router = APIRouter(prefix="/api/posts", tags=["posts"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _content_response(view: ContentView) -> ContentResponse:
    return ContentResponse(**asdict(view))


def _visible_view(board: Board, content_id: str, viewer: Optional[Account]) -> ContentView:
    item = board.content.get_item(content_id)
    if item.hidden:
        raise HTTPException(status_code=404, detail="Post not found")
    return board.content.view(item, board.content.viewer_pseudonym(viewer.id if viewer else None))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=FeedResponse)
async def list_posts(
    tab: str = Query("recent", pattern="^(recent|trending|top)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: Optional[Account] = Depends(get_optional_account),
    board: Board = Depends(get_board),
):
    """List visible posts for a feed tab."""
    # One extra item past this page tells us whether another page exists.
    views = board.content.feed(viewer.id if viewer else None, tab=tab, page=1, limit=page * limit + 1)
    start = (page - 1) * limit
    return FeedResponse(
        posts=[_content_response(v) for v in views[start:start + limit]],
        page=page,
        has_more=len(views) > page * limit,
    )


@router.post("", response_model=ContentResponse, status_code=201)
async def create_post(
    req: PostCreateRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """Publish a post, anonymously by default."""
    try:
        item = board.content.publish(
            account.id,
            req.body,
            anonymous=req.anonymous,
            poll=req.poll.model_dump() if req.poll else None,
            repost_of=req.repost_of,
            repost_thoughts=req.repost_thoughts,
        )
    except (AnonBoardError, ValueError) as exc:
        raise http_error(exc) from exc
    return _content_response(board.content.view(item, item.author_pseudonym))


@router.get("/{content_id}", response_model=ContentResponse)
async def get_post(
    content_id: str,
    viewer: Optional[Account] = Depends(get_optional_account),
    board: Board = Depends(get_board),
):
    try:
        view = _visible_view(board, content_id, viewer)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return _content_response(view)


@router.get("/{content_id}/comments", response_model=list[ContentResponse])
async def list_comments(
    content_id: str,
    viewer: Optional[Account] = Depends(get_optional_account),
    board: Board = Depends(get_board),
):
    try:
        views = board.content.comments(content_id, viewer.id if viewer else None)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return [_content_response(v) for v in views]


@router.post("/{content_id}/comments", response_model=ContentResponse, status_code=201)
async def create_comment(
    content_id: str,
    req: CommentCreateRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    try:
        item = board.content.publish(
            account.id,
            req.body,
            anonymous=req.anonymous,
            kind=ContentKind.comment,
            parent_id=content_id,
        )
    except (AnonBoardError, ValueError) as exc:
        raise http_error(exc) from exc
    return _content_response(board.content.view(item, item.author_pseudonym))


@router.post("/{content_id}/vote", response_model=VoteResponse)
async def vote(
    content_id: str,
    req: VoteRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """Vote up or down; repeating the same vote retracts it."""
    try:
        outcome = board.vote(account.id, content_id, req.vote)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return VoteResponse(
        up=outcome.tally.up,
        down=outcome.tally.down,
        viewer_vote=outcome.effective_vote.value if outcome.effective_vote else None,
        trending=outcome.trending,
    )


@router.post("/{content_id}/poll/vote", response_model=PollResponse)
async def vote_poll(
    content_id: str,
    req: PollVoteRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    try:
        poll = board.vote_poll(account.id, content_id, req.option_id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return PollResponse(
        question=poll.question,
        options=[asdict(o) for o in poll.options],
        total_votes=poll.total_votes,
        ends_at=poll.ends_at,
        viewer_choice=req.option_id,
    )


@router.post("/{content_id}/report", response_model=ReportResponse)
async def report(
    content_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    try:
        outcome = board.report(account.id, content_id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc

    if outcome.already_reported:
        message = "You have already reported this post"
    elif outcome.flagged:
        message = "Post has been flagged for review due to multiple reports"
    else:
        message = "Thank you for your report"
    return ReportResponse(
        flagged=outcome.flagged,
        report_count=outcome.report_count,
        already_reported=outcome.already_reported,
        message=message,
    )
