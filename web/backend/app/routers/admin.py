"""Admin router -- review queue, identity resolution, bans, and audit.

Prefix: ``/api/admin``

Moderators may review, hide, unflag, and resolve identities.
Bans and the audit log require an administrator.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from anonboard.auth.models import Account, Role
from anonboard.auth.permissions import require_role
from anonboard.board import Board
from anonboard.content.models import ContentItem
from anonboard.errors import AnonBoardError
from web.backend.app.errors import http_error
from web.backend.app.middleware.auth import get_board, get_current_account
from web.backend.app.models.api import (
    AccountHistoryResponse,
    AccountResponse,
    AuditEventResponse,
    BanRequest,
    FlaggedItemResponse,
    FlaggedQueueResponse,
    IdentityResponse,
    NotesRequest,
    OverviewResponse,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def account_response(a: Account) -> AccountResponse:
    return AccountResponse(
        id=a.id,
        email=a.email,
        display_name=a.display_name,
        role=a.role.value,
        reported_count=a.reported_count,
        ban_state=a.ban.state.value,
        ban_expires_at=a.ban.expires_at,
        ban_reason=a.ban.reason,
        created_at=a.created_at,
    )


def _item_response(c: ContentItem) -> FlaggedItemResponse:
    return FlaggedItemResponse(
        id=c.id,
        kind=c.kind.value,
        body=c.body,
        display_alias=c.display_alias,
        report_count=c.report_count,
        flagged=c.flagged,
        hidden=c.hidden,
        moderator_hidden=c.moderator_hidden,
        ban_hidden=c.ban_hidden,
        moderator_notes=c.moderator_notes,
        created_at=c.created_at,
    )


# =========================================================================
# Review
# =========================================================================


@router.get("/flagged", response_model=FlaggedQueueResponse)
async def flagged_queue(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """List flagged or hidden content, most reported first."""
    require_role(account, Role.moderator)
    items, total = board.review.flagged_content(page, limit)
    return FlaggedQueueResponse(items=[_item_response(c) for c in items], total=total, page=page)


@router.get("/overview", response_model=OverviewResponse)
async def overview(
    days: int = Query(30, ge=1, le=365),
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.moderator)
    return OverviewResponse(**asdict(board.review.overview(days)))


@router.post("/content/{content_id}/resolve", response_model=IdentityResponse)
async def resolve_author(
    content_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """Reveal the real author of a content item. Every call is audited."""
    require_role(account, Role.moderator)
    try:
        result = board.resolve_identity(content_id, account.id)
        author = board.accounts.require_account(result.identity.account_id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return IdentityResponse(
        content_id=result.content_id,
        author=account_response(author),
        hash_verified=result.hash_verified,
        resolved_at=result.resolved_at,
    )


@router.post("/content/{content_id}/hide", response_model=FlaggedItemResponse)
async def hide_content(
    content_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.moderator)
    try:
        item = board.moderation.hide_content(content_id, account.id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return _item_response(item)


@router.post("/content/{content_id}/unhide", response_model=FlaggedItemResponse)
async def unhide_content(
    content_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.moderator)
    try:
        item = board.moderation.unhide_content(content_id, account.id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return _item_response(item)


@router.post("/content/{content_id}/unflag", response_model=FlaggedItemResponse)
async def unflag_content(
    content_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.moderator)
    try:
        item = board.moderation.clear_flag(content_id, account.id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return _item_response(item)


@router.put("/content/{content_id}/notes", response_model=FlaggedItemResponse)
async def set_notes(
    content_id: str,
    req: NotesRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.moderator)
    try:
        item = board.moderation.set_notes(content_id, account.id, req.notes)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return _item_response(item)


# =========================================================================
# Accounts
# =========================================================================


@router.get("/accounts/{account_id}", response_model=AccountHistoryResponse)
async def account_history(
    account_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """An account and everything it has authored."""
    require_role(account, Role.administrator)
    try:
        history = board.review.account_history(account_id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return AccountHistoryResponse(
        account=account_response(history.account),
        items=[_item_response(c) for c in history.items],
        total_items=history.total_items,
        total_upvotes=history.total_upvotes,
        flagged_items=history.flagged_items,
    )


@router.post("/accounts/{account_id}/ban", response_model=AccountResponse)
async def ban_account(
    account_id: str,
    req: BanRequest,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """Ban an account (temporary with ``duration_days``) and hide its content."""
    require_role(account, Role.administrator)
    try:
        banned = board.apply_ban(account_id, account.id, req.reason, req.duration_days)
    except (AnonBoardError, ValueError) as exc:
        raise http_error(exc) from exc
    return account_response(banned)


@router.post("/accounts/{account_id}/unban", response_model=AccountResponse)
async def unban_account(
    account_id: str,
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    require_role(account, Role.administrator)
    try:
        restored = board.lift_ban(account_id, account.id)
    except AnonBoardError as exc:
        raise http_error(exc) from exc
    return account_response(restored)


# =========================================================================
# Audit
# =========================================================================


@router.get("/audit", response_model=list[AuditEventResponse])
async def list_audit_events(
    actor: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    target_type: Optional[str] = Query(None),
    since: Optional[str] = Query(None),
    until: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=10000),
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """List security audit events with optional filters."""
    require_role(account, Role.administrator)
    events = board.audit.query(
        actor=actor,
        action=action,
        target_type=target_type,
        since=since,
        until=until,
        limit=limit,
    )
    return [AuditEventResponse(**asdict(e)) for e in events]
