"""Pydantic models for API request/response serialization.

These mirror the anonboard dataclasses. Public content responses never
carry pseudonyms.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Content models
# ---------------------------------------------------------------------------


class PollCreateRequest(BaseModel):
    question: str
    options: list[str] = Field(..., min_length=2)
    ends_at: str = ""


class PostCreateRequest(BaseModel):
    body: str = Field(..., min_length=1)
    anonymous: bool = True
    poll: Optional[PollCreateRequest] = None
    repost_of: str = ""
    repost_thoughts: str = ""


class CommentCreateRequest(BaseModel):
    body: str = Field(..., min_length=1)
    anonymous: bool = True


class VoteRequest(BaseModel):
    vote: Literal["up", "down"]


class PollVoteRequest(BaseModel):
    option_id: str


class PollOptionResponse(BaseModel):
    id: str
    text: str
    vote_count: int = 0


class PollResponse(BaseModel):
    """Mirrors anonboard.content.models.PollView."""

    question: str
    options: list[PollOptionResponse] = Field(default_factory=list)
    total_votes: int = 0
    ends_at: str = ""
    viewer_choice: Optional[str] = None


class ContentResponse(BaseModel):
    """Mirrors anonboard.content.models.ContentView."""

    id: str
    kind: str
    body: str
    display_alias: str
    is_anonymous: bool
    up: int = 0
    down: int = 0
    trending: bool = False
    flagged: bool = False
    comment_count: int = 0
    repost_count: int = 0
    tags: list[str] = Field(default_factory=list)
    created_at: str = ""
    parent_id: str = ""
    repost_of: str = ""
    repost_thoughts: str = ""
    viewer_vote: Optional[str] = None
    viewer_reported: bool = False
    poll: Optional[PollResponse] = None


class FeedResponse(BaseModel):
    posts: list[ContentResponse] = Field(default_factory=list)
    page: int = 1
    has_more: bool = False


class VoteResponse(BaseModel):
    """Mirrors anonboard.voting.VoteOutcome."""

    up: int
    down: int
    viewer_vote: Optional[str] = None
    trending: bool = False


class ReportResponse(BaseModel):
    """Mirrors anonboard.moderation.reports.ReportOutcome."""

    flagged: bool
    report_count: int
    already_reported: bool = False
    message: str = ""


# ---------------------------------------------------------------------------
# Account / admin models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    id: str
    email: str
    display_name: str = ""
    role: str
    reported_count: int = 0
    ban_state: str = "active"
    ban_expires_at: str = ""
    ban_reason: str = ""
    created_at: str = ""


class BanRequest(BaseModel):
    reason: str = ""
    duration_days: Optional[float] = Field(None, gt=0)


class NotesRequest(BaseModel):
    notes: str = ""


class IdentityResponse(BaseModel):
    """Mirrors anonboard.identity.resolver.Resolution."""

    content_id: str
    author: AccountResponse
    hash_verified: bool
    resolved_at: str


class FlaggedItemResponse(BaseModel):
    id: str
    kind: str
    body: str
    display_alias: str
    report_count: int
    flagged: bool
    hidden: bool
    moderator_hidden: bool = False
    ban_hidden: bool = False
    moderator_notes: str = ""
    created_at: str = ""


class FlaggedQueueResponse(BaseModel):
    items: list[FlaggedItemResponse] = Field(default_factory=list)
    total: int = 0
    page: int = 1


class AccountHistoryResponse(BaseModel):
    account: AccountResponse
    items: list[FlaggedItemResponse] = Field(default_factory=list)
    total_items: int = 0
    total_upvotes: int = 0
    flagged_items: int = 0


class OverviewResponse(BaseModel):
    """Mirrors anonboard.moderation.review.Overview."""

    total_items: int
    recent_items: int
    flagged_items: int
    hidden_items: int
    banned_accounts: int
    reporting_rate: float
    days: int


class AuditEventResponse(BaseModel):
    """Mirrors anonboard.security.audit_log.AuditEvent."""

    id: str
    timestamp: str
    actor: str
    action: str
    target_type: str
    target_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    success: bool = True
