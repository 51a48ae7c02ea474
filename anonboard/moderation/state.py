"""Moderator and administrator actions on content and accounts.

Content carries two independent booleans, ``flagged`` (set by the report
ledger) and ``hidden`` (a moderator hide or the author's ban). Accounts
move between ``active``, ``banned-temporary`` and ``banned-permanent``.
Every ban is reversible. A ban is complete only once
:class:`BanPropagator` has hidden the account's content, and both
happen inside :meth:`ModerationState.ban_account`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from anonboard.auth.models import Account, BanState, BanStatus, Role
from anonboard.auth.store import AccountStore
from anonboard.content.models import ContentItem
from anonboard.content.store import ContentStore
from anonboard.errors import BanPropagationError, ForbiddenActionError, NotFoundError
from anonboard.moderation.bans import BanPropagator
from anonboard.security import audit_log
from anonboard.security.audit_log import AuditLog

logger = logging.getLogger(__name__)


class ModerationState:
    """State transitions for content visibility and account bans."""

    def __init__(
        self,
        accounts: AccountStore,
        contents: ContentStore,
        propagator: BanPropagator,
        audit: AuditLog,
    ) -> None:
        self._accounts = accounts
        self._contents = contents
        self._propagator = propagator
        self._audit = audit

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_content(self, content_id: str, changes: dict) -> ContentItem:
        item = self._contents.update(content_id, changes)
        if item is None:
            raise NotFoundError(f"Content '{content_id}' not found")
        return item

    def _audit_event(self, actor: str, action: str, target_type: str, target_id: str,
                     details: Optional[dict[str, Any]] = None) -> None:
        try:
            self._audit.record(actor, action, target_type, target_id, details)
        except OSError:
            logger.warning("Audit write failed for %s on %s", action, target_id, exc_info=True)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def hide_content(self, content_id: str, actor_id: str) -> ContentItem:
        item = self._set_content(content_id, {"moderator_hidden": True})
        self._audit_event(actor_id, audit_log.CONTENT_HIDDEN, "content", content_id)
        return item

    def unhide_content(self, content_id: str, actor_id: str) -> ContentItem:
        """Remove a moderator hide. Content of a banned author stays hidden."""
        item = self._set_content(content_id, {"moderator_hidden": False})
        self._audit_event(actor_id, audit_log.CONTENT_UNHIDDEN, "content", content_id)
        return item

    def clear_flag(self, content_id: str, actor_id: str) -> ContentItem:
        """Explicitly unflag content after review.

        Reports are kept and the author's ``reported_count`` is not
        decremented.
        """
        item = self._set_content(content_id, {"flagged": False, "flagged_at": ""})
        self._audit_event(actor_id, audit_log.CONTENT_UNFLAGGED, "content", content_id)
        return item

    def set_notes(self, content_id: str, actor_id: str, notes: str) -> ContentItem:
        item = self._set_content(content_id, {"moderator_notes": notes})
        self._audit_event(actor_id, audit_log.CONTENT_NOTES, "content", content_id)
        return item

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def ban_account(
        self,
        account_id: str,
        actor_id: str,
        reason: str = "",
        duration_days: Optional[float] = None,
    ) -> Account:
        """Ban an account and hide everything it has authored.

        With *duration_days* the ban is temporary, otherwise permanent.
        Raises ``ForbiddenActionError`` for administrators or self-bans and
        ``BanPropagationError`` if content could not be hidden (the ban
        status stays in place for the next :meth:`reconcile_bans`).
        """
        account = self._accounts.require_account(account_id)
        if account.role == Role.administrator:
            raise ForbiddenActionError("Administrators cannot be banned")
        if account_id == actor_id:
            raise ForbiddenActionError("Accounts cannot ban themselves")
        if duration_days is not None and duration_days <= 0:
            raise ValueError("duration_days must be positive")

        now = datetime.now(timezone.utc)
        if duration_days is None:
            ban = BanStatus(state=BanState.permanent)
        else:
            ban = BanStatus(
                state=BanState.temporary,
                expires_at=(now + timedelta(days=duration_days)).isoformat(),
            )
        ban.reason = reason
        ban.banned_by = actor_id
        ban.banned_at = now.isoformat()

        account = self._accounts.set_ban(account_id, ban)
        hidden = self._propagator.apply_ban(account_id)
        self._audit_event(
            actor_id,
            audit_log.ACCOUNT_BANNED,
            "account",
            account_id,
            {
                "email": account.email,
                "state": ban.state.value,
                "expires_at": ban.expires_at,
                "reason": reason,
                "content_hidden": hidden,
            },
        )
        return account

    def unban_account(self, account_id: str, actor_id: str) -> Account:
        """Lift any ban and restore the account's content.

        Content is restored before the ban status is cleared. If the
        restore fails with ``BanPropagationError`` the account stays
        banned, and a retry or the next sweep stays consistent.
        """
        self._accounts.require_account(account_id)
        restored = self._propagator.lift_ban(account_id)
        account = self._accounts.set_ban(account_id, BanStatus())
        self._audit_event(
            actor_id,
            audit_log.ACCOUNT_UNBANNED,
            "account",
            account_id,
            {"email": account.email, "content_restored": restored},
        )
        return account

    # ------------------------------------------------------------------
    # Scheduled sweep
    # ------------------------------------------------------------------

    def expire_bans(self, now: Optional[datetime] = None) -> list[str]:
        """Lift temporary bans whose expiry has passed. Returns account ids."""
        lifted: list[str] = []
        for account in self._accounts.list_accounts(banned=True):
            if not account.ban.is_expired(now):
                continue
            try:
                self._propagator.lift_ban(account.id)
            except BanPropagationError:
                logger.error("Ban on account %s expired but its content could not be restored", account.id)
                continue
            self._accounts.set_ban(account.id, BanStatus())
            self._audit_event("system", audit_log.ACCOUNT_BAN_EXPIRED, "account", account.id)
            lifted.append(account.id)
        if lifted:
            logger.info("Expired %d temporary ban(s)", len(lifted))
        return lifted

    def reconcile_bans(self) -> int:
        """Re-apply propagation for every account.

        Picks up content that a banned account published while its ban
        was being applied, and restores ban-hidden content of accounts
        that are no longer banned. Returns the number of items newly
        hidden.
        """
        total = 0
        restored = 0
        for account in self._accounts.list_accounts():
            if account.is_banned:
                total += self._propagator.apply_ban(account.id)
            elif account.pseudonym:
                restored += self._propagator.lift_ban(account.id)
        if total:
            logger.info("Ban reconcile hid %d straggling item(s)", total)
        if restored:
            logger.warning("Ban reconcile restored %d item(s) of unbanned accounts", restored)
        return total
