"""Privileged re-identification of anonymous authors.

The only code path that turns a pseudonym back into an account. The
owning account is found via the indexed pseudonym lookup; then its
pseudonym is re-derived from ``(account_id, email, secret)``. The
identity is returned only if the stored, content, and freshly derived
values all agree. Any disagreement is an :class:`IntegrityError`, never
a best guess.

Each resolution is written to the security audit log. A failed audit
write is logged locally and does not fail the resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from anonboard.auth.models import Account, utcnow_iso
from anonboard.auth.store import AccountStore
from anonboard.content.store import ContentStore
from anonboard.errors import IntegrityError, NotFoundError
from anonboard.identity.pseudonym import PseudonymDeriver
from anonboard.security.audit_log import IDENTITY_RESOLVED, AuditLog

logger = logging.getLogger(__name__)


@dataclass
class AccountIdentity:
    account_id: str
    email: str
    display_name: str
    role: str
    reported_count: int
    ban_state: str
    created_at: str

    @classmethod
    def of(cls, account: Account) -> "AccountIdentity":
        return cls(
            account_id=account.id,
            email=account.email,
            display_name=account.display_name,
            role=account.role.value,
            reported_count=account.reported_count,
            ban_state=account.ban.state.value,
            created_at=account.created_at,
        )


@dataclass
class Resolution:
    content_id: str
    pseudonym: str
    identity: AccountIdentity
    hash_verified: bool
    resolved_at: str


class IdentityResolver:
    """Resolve a content item's author for a moderator or administrator.

    Role checks belong to the caller (the web layer or CLI).
    """

    def __init__(
        self,
        accounts: AccountStore,
        contents: ContentStore,
        deriver: PseudonymDeriver,
        audit: Optional[AuditLog] = None,
    ) -> None:
        self._accounts = accounts
        self._contents = contents
        self._deriver = deriver
        self._audit = audit

    def resolve(self, content_id: str, actor_id: str) -> Resolution:
        item = self._contents.get(content_id)
        if item is None:
            raise NotFoundError(f"Content '{content_id}' not found")

        account = self._accounts.get_account_by_pseudonym(item.author_pseudonym)
        if account is None:
            # A content pseudonym nobody owns means a cached pseudonym was altered.
            logger.error("No account owns the author pseudonym of content %s", content_id)
            self._record(actor_id, content_id, success=False, details={"reason": "no_owner"})
            raise IntegrityError(
                f"No account owns the author pseudonym of '{content_id}'; "
                "manual investigation required"
            )

        fresh = self._deriver.derive(account)
        if not (fresh == account.pseudonym == item.author_pseudonym):
            logger.error(
                "Pseudonym verification failed resolving content %s (account %s)",
                content_id, account.id,
            )
            self._record(
                actor_id,
                content_id,
                success=False,
                details={"reason": "hash_mismatch", "account_id": account.id},
            )
            raise IntegrityError(
                f"Pseudonym verification failed for content '{content_id}'; "
                "manual investigation required"
            )

        resolution = Resolution(
            content_id=content_id,
            pseudonym=item.author_pseudonym,
            identity=AccountIdentity.of(account),
            hash_verified=True,
            resolved_at=utcnow_iso(),
        )
        self._record(
            actor_id,
            content_id,
            success=True,
            details={"account_id": account.id, "email": account.email},
        )
        return resolution

    def _record(self, actor_id: str, content_id: str, success: bool, details: dict) -> None:
        if self._audit is None:
            return
        try:
            self._audit.record(
                actor=actor_id,
                action=IDENTITY_RESOLVED,
                target_type="content",
                target_id=content_id,
                details=details,
                success=success,
            )
        except Exception:
            # Audit is fire-and-forget: never block the resolution on it.
            logger.warning("Audit write failed for resolution of %s", content_id, exc_info=True)
