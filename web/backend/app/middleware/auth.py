"""Auth middleware -- FastAPI dependencies for the board and the calling account.

Callers authenticate with ``Authorization: Bearer <session_token>``.
Anonymous readers send no header and get ``None`` from
:func:`get_optional_account`.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from anonboard.auth.models import Account
from anonboard.board import Board
from anonboard.config import load_settings

# Shared board instance
_board: Optional[Board] = None


def get_board() -> Board:
    """Return the singleton Board, building it from settings on first use."""
    global _board
    if _board is None:
        _board = Board.from_settings(load_settings())
    return _board


def set_board(board: Optional[Board]) -> None:
    """Install a prebuilt Board (tests, embedding applications)."""
    global _board
    _board = board


def _account_from_header(board: Board, authorization: Optional[str]) -> Optional[Account]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return board.accounts.validate_session(token)


async def get_current_account(
    authorization: Optional[str] = Header(None),
    board: Board = Depends(get_board),
) -> Account:
    """FastAPI dependency that resolves the calling account.

    Raises ``401 Unauthorized`` without a valid session token.
    """
    account = _account_from_header(board, authorization)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account


async def get_optional_account(
    authorization: Optional[str] = Header(None),
    board: Board = Depends(get_board),
) -> Optional[Account]:
    """Same as ``get_current_account`` but returns ``None`` for anonymous readers."""
    return _account_from_header(board, authorization)
