"""Account and session storage on top of :class:`DocumentStore`.

Collections:
- ``accounts`` -- account dicts; ``email`` and ``pseudonym`` are unique
- ``sessions`` -- session dicts; ``token`` is unique
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from anonboard.auth.models import Account, BanStatus, Role, Session, parse_utc
from anonboard.errors import NotFoundError
from anonboard.storage import DocumentStore

ACCOUNTS = "accounts"
SESSIONS = "sessions"


class AccountStore:
    """Account CRUD, pseudonym claiming, and session tokens."""

    def __init__(self, db: DocumentStore) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _account_from_dict(d: dict) -> Account:
        role_val = d.get("role", "member")
        try:
            role_val = Role(role_val)
        except ValueError:
            role_val = Role.member
        return Account(
            id=d["id"],
            email=d["email"],
            display_name=d.get("display_name", ""),
            role=role_val,
            pseudonym=d.get("pseudonym", ""),
            pseudonym_attempt=d.get("pseudonym_attempt", 0),
            reported_count=d.get("reported_count", 0),
            ban=BanStatus.from_dict(d.get("ban")),
            created_at=d.get("created_at", ""),
            version=d.get("_version", 0),
        )

    @staticmethod
    def _account_to_dict(a: Account) -> dict:
        return {
            "id": a.id,
            "email": a.email,
            "display_name": a.display_name,
            "role": a.role.value,
            "pseudonym": a.pseudonym,
            "pseudonym_attempt": a.pseudonym_attempt,
            "reported_count": a.reported_count,
            "ban": a.ban.to_dict(),
            "created_at": a.created_at,
        }

    def _require(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return account

    # ------------------------------------------------------------------
    # Account CRUD
    # ------------------------------------------------------------------

    def create_account(
        self,
        email: str,
        display_name: str = "",
        role: Role = Role.member,
        account_id: Optional[str] = None,
    ) -> Account:
        """Persist a new account. Raises ``ConflictError`` on a duplicate email."""
        account = Account(
            id=account_id or uuid.uuid4().hex,
            email=email.strip().lower(),
            display_name=display_name or email.split("@")[0],
            role=role,
        )
        doc = self._db.insert(ACCOUNTS, self._account_to_dict(account))
        return self._account_from_dict(doc)

    def get_account(self, account_id: str) -> Optional[Account]:
        d = self._db.get(ACCOUNTS, account_id)
        return self._account_from_dict(d) if d else None

    def require_account(self, account_id: str) -> Account:
        """Like :meth:`get_account` but raises ``NotFoundError``."""
        return self._require(account_id)

    def get_account_by_email(self, email: str) -> Optional[Account]:
        d = self._db.lookup(ACCOUNTS, "email", email.strip().lower())
        return self._account_from_dict(d) if d else None

    def get_account_by_pseudonym(self, pseudonym: str) -> Optional[Account]:
        d = self._db.lookup(ACCOUNTS, "pseudonym", pseudonym)
        return self._account_from_dict(d) if d else None

    def list_accounts(
        self,
        role: Optional[Role] = None,
        banned: Optional[bool] = None,
        search: str = "",
    ) -> list[Account]:
        accounts = [self._account_from_dict(d) for d in self._db.find(ACCOUNTS)]
        if role is not None:
            accounts = [a for a in accounts if a.role == role]
        if banned is not None:
            accounts = [a for a in accounts if a.is_banned == banned]
        if search:
            needle = search.lower()
            accounts = [
                a for a in accounts
                if needle in a.email or needle in a.display_name.lower()
            ]
        return accounts

    def update_display_name(self, account_id: str, display_name: str) -> Account:
        """Rename an account. The pseudonym is left untouched."""
        d = self._db.update_one(ACCOUNTS, account_id, {"display_name": display_name})
        if d is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return self._account_from_dict(d)

    def update_role(self, account_id: str, role: Role) -> Account:
        d = self._db.update_one(ACCOUNTS, account_id, {"role": Role(role).value})
        if d is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return self._account_from_dict(d)

    # ------------------------------------------------------------------
    # Pseudonym and moderation fields
    # ------------------------------------------------------------------

    def claim_pseudonym(self, account_id: str, pseudonym: str, attempt: int) -> Optional[Account]:
        """Persist *pseudonym* only if the account has none yet.

        Returns the updated account, or ``None`` if a pseudonym was
        already set (the caller should re-read). Raises
        ``ConflictError`` if another account already owns the value.
        """
        self._require(account_id)
        d = self._db.update_one(
            ACCOUNTS,
            account_id,
            {"pseudonym": pseudonym, "pseudonym_attempt": attempt},
            where={"pseudonym": ""},
        )
        return self._account_from_dict(d) if d else None

    def increment_reported_count(self, account_id: str) -> Account:
        d = self._db.increment(ACCOUNTS, account_id, "reported_count", 1)
        if d is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return self._account_from_dict(d)

    def set_ban(self, account_id: str, ban: BanStatus) -> Account:
        d = self._db.update_one(ACCOUNTS, account_id, {"ban": ban.to_dict()})
        if d is None:
            raise NotFoundError(f"Account '{account_id}' not found")
        return self._account_from_dict(d)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, account_id: str, expires_in_hours: int = 24) -> Session:
        """Create a new session for an account."""
        self._require(account_id)
        now = datetime.now(timezone.utc)
        session = Session(
            id=uuid.uuid4().hex,
            account_id=account_id,
            token=secrets.token_urlsafe(48),
            created_at=now.isoformat(),
            expires_at=(now + timedelta(hours=expires_in_hours)).isoformat(),
        )
        self._db.insert(SESSIONS, {
            "id": session.id,
            "account_id": session.account_id,
            "token": session.token,
            "created_at": session.created_at,
            "expires_at": session.expires_at,
        })
        return session

    def validate_session(self, token: str) -> Optional[Account]:
        """Return the account behind a session token, or None."""
        if not token:
            return None
        d = self._db.lookup(SESSIONS, "token", token)
        if d is None:
            return None
        if d.get("expires_at") and parse_utc(d["expires_at"]) < datetime.now(timezone.utc):
            # Expired -- clean it up
            self.delete_session(token)
            return None
        return self.get_account(d["account_id"])

    def delete_session(self, token: str) -> bool:
        d = self._db.lookup(SESSIONS, "token", token)
        if d is None:
            return False
        return self._db.delete(SESSIONS, d["id"])
