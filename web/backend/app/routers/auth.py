"""Auth router -- the calling account and session logout.

Session tokens are issued out of band (``anonboard account session``);
third-party login is handled by the deployment's identity provider.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from anonboard.auth.models import Account
from anonboard.board import Board
from web.backend.app.middleware.auth import get_board, get_current_account
from web.backend.app.models.api import AccountResponse
from web.backend.app.routers.admin import account_response

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_account)):
    """Return the authenticated account."""
    return account_response(account)


@router.post("/logout")
async def logout(
    authorization: Optional[str] = Header(None),
    account: Account = Depends(get_current_account),
    board: Board = Depends(get_board),
):
    """Invalidate the current session token."""
    _, _, token = (authorization or "").partition(" ")
    board.accounts.delete_session(token)
    return {"message": "Logged out"}
