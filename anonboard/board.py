"""Wiring for one community board.

:class:`Board` builds every component from a validated
:class:`~anonboard.config.Settings`. It also exposes the
account-id-level operations used by the transport layer and the CLI.
Those operations turn the caller's account into its pseudonym before
any ledger sees it.
"""

from __future__ import annotations

from typing import Optional

from anonboard.auth.models import Account
from anonboard.auth.store import AccountStore
from anonboard.config import Settings
from anonboard.content.models import Poll, VoteValue
from anonboard.content.service import ContentService
from anonboard.content.store import ContentStore
from anonboard.errors import AccountBannedError, NotFoundError
from anonboard.identity.pseudonym import PseudonymDeriver
from anonboard.identity.resolver import IdentityResolver, Resolution
from anonboard.moderation.bans import BanPropagator
from anonboard.moderation.reports import ReportLedger, ReportOutcome
from anonboard.moderation.review import ReviewQueue
from anonboard.moderation.state import ModerationState
from anonboard.security.audit_log import AuditLog
from anonboard.storage import DocumentStore
from anonboard.voting import PollLedger, VoteLedger, VoteOutcome


UNIQUE_FIELDS = {
    "accounts": ("email", "pseudonym"),
    "sessions": ("token",),
}


class Board:
    """All anonboard components sharing one data directory."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings.validate()
        data = settings.data_path
        self.db = DocumentStore(data / "db", unique=UNIQUE_FIELDS)
        self.audit = AuditLog(data / "audit")

        self.accounts = AccountStore(self.db)
        self.contents = ContentStore(self.db)
        self.deriver = PseudonymDeriver(
            self.accounts, settings.server_secret, settings.pseudonym_max_attempts
        )
        self.content = ContentService(self.accounts, self.contents, self.deriver)
        self.votes = VoteLedger(
            self.contents, settings.trending_threshold, settings.ledger_max_retries
        )
        self.polls = PollLedger(self.contents, settings.ledger_max_retries)
        self.reports = ReportLedger(
            self.contents,
            self.accounts,
            self.audit,
            threshold=settings.report_threshold,
            max_retries=settings.ledger_max_retries,
        )
        self.bans = BanPropagator(self.accounts, self.contents, settings.ban_propagation_attempts)
        self.moderation = ModerationState(self.accounts, self.contents, self.bans, self.audit)
        self.resolver = IdentityResolver(self.accounts, self.contents, self.deriver, self.audit)
        self.review = ReviewQueue(self.accounts, self.contents)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Board":
        return cls(settings)

    # ------------------------------------------------------------------
    # Caller-level operations
    # ------------------------------------------------------------------

    def _writer_pseudonym(self, account_id: str) -> str:
        account: Account = self.accounts.require_account(account_id)
        if account.is_banned:
            raise AccountBannedError("Account is banned")
        return self.deriver.ensure_pseudonym(account.id)

    def _require_visible(self, content_id: str) -> None:
        # Hidden content is treated as absent for readers and writers alike.
        if self.content.get_item(content_id).hidden:
            raise NotFoundError(f"Content '{content_id}' not found")

    def derive_pseudonym(self, account_id: str) -> str:
        """Return (deriving and caching if needed) the account's pseudonym."""
        return self.deriver.ensure_pseudonym(account_id)

    def vote(self, account_id: str, content_id: str, value: VoteValue | str) -> VoteOutcome:
        pseudonym = self._writer_pseudonym(account_id)
        self._require_visible(content_id)
        return self.votes.vote(content_id, pseudonym, value)

    def vote_poll(self, account_id: str, content_id: str, option_id: str) -> Poll:
        pseudonym = self._writer_pseudonym(account_id)
        self._require_visible(content_id)
        return self.polls.vote(content_id, pseudonym, option_id)

    def report(self, account_id: str, content_id: str) -> ReportOutcome:
        pseudonym = self._writer_pseudonym(account_id)
        self._require_visible(content_id)
        return self.reports.report(content_id, pseudonym)

    def resolve_identity(self, content_id: str, actor_id: str) -> Resolution:
        return self.resolver.resolve(content_id, actor_id)

    def apply_ban(
        self,
        account_id: str,
        actor_id: str,
        reason: str = "",
        duration_days: Optional[float] = None,
    ) -> Account:
        return self.moderation.ban_account(account_id, actor_id, reason, duration_days)

    def lift_ban(self, account_id: str, actor_id: str) -> Account:
        return self.moderation.unban_account(account_id, actor_id)

    def sweep(self) -> tuple[list[str], int]:
        """Scheduled job: expire temporary bans, then re-apply active ones."""
        expired = self.moderation.expire_bans()
        rehidden = self.moderation.reconcile_bans()
        return expired, rehidden
