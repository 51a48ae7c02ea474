"""Moderator views: flagged-content queue, account history, and overview counts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from anonboard.auth.models import Account, parse_utc
from anonboard.auth.store import AccountStore
from anonboard.content.models import ContentItem
from anonboard.content.store import ContentStore


@dataclass
class AccountHistory:
    account: Account
    items: list[ContentItem] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def total_upvotes(self) -> int:
        return sum(c.tally.up for c in self.items)

    @property
    def flagged_items(self) -> int:
        return sum(1 for c in self.items if c.flagged)


@dataclass
class Overview:
    total_items: int
    recent_items: int
    flagged_items: int
    hidden_items: int
    banned_accounts: int
    reporting_rate: float
    days: int


class ReviewQueue:
    def __init__(self, accounts: AccountStore, contents: ContentStore) -> None:
        self._accounts = accounts
        self._contents = contents

    def flagged_content(self, page: int = 1, limit: int = 20) -> tuple[list[ContentItem], int]:
        """Flagged or hidden items, most reported first. Returns ``(page_items, total)``."""
        items = self._contents.find(lambda c: c.flagged or c.hidden)
        items.sort(key=lambda c: c.created_at, reverse=True)
        items.sort(key=lambda c: c.report_count, reverse=True)
        start = (max(page, 1) - 1) * limit
        return items[start:start + limit], len(items)

    def account_history(self, account_id: str) -> AccountHistory:
        account = self._accounts.require_account(account_id)
        if not account.pseudonym:
            return AccountHistory(account=account)
        items = self._contents.by_author(account.pseudonym)
        items.sort(key=lambda c: c.created_at, reverse=True)
        return AccountHistory(account=account, items=items)

    def overview(self, days: int = 30) -> Overview:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        items = self._contents.find()
        flagged = sum(1 for c in items if c.flagged)
        return Overview(
            total_items=len(items),
            recent_items=sum(1 for c in items if c.created_at and parse_utc(c.created_at) >= since),
            flagged_items=flagged,
            hidden_items=sum(1 for c in items if c.hidden),
            banned_accounts=len(self._accounts.list_accounts(banned=True)),
            reporting_rate=round(flagged / len(items) * 100, 2) if items else 0.0,
            days=days,
        )
