"""Report ledger with threshold-based auto-flagging.

Each pseudonym may report an item once. When the number of distinct
reporters first reaches the threshold, the item is flagged and the
author's ``reported_count`` goes up by one. The flag flip is part of
the same versioned write that records the report, so only one writer
can ever observe the false -> true transition, even when several reports
race past the threshold.

Flagging is one-way here; only an explicit moderator action clears it.
Crossing the threshold is recorded separately as ``threshold_crossed``,
which nothing resets: once a moderator has cleared the flag, later
reports neither flag the item again nor count against the author.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from anonboard.auth.models import utcnow_iso
from anonboard.auth.store import AccountStore
from anonboard.content.models import ContentItem
from anonboard.content.store import ContentStore
from anonboard.errors import NotFoundError, StaleWriteError
from anonboard.security.audit_log import CONTENT_AUTO_FLAGGED, AuditLog

logger = logging.getLogger(__name__)

REPORT_THRESHOLD = 3


@dataclass
class ReportOutcome:
    flagged: bool
    report_count: int
    already_reported: bool = False
    newly_flagged: bool = False


class ReportLedger:
    """Record reports against content items."""

    def __init__(
        self,
        contents: ContentStore,
        accounts: AccountStore,
        audit: Optional[AuditLog] = None,
        threshold: int = REPORT_THRESHOLD,
        max_retries: int = 8,
    ) -> None:
        self._contents = contents
        self._accounts = accounts
        self._audit = audit
        self._threshold = threshold
        self._max_retries = max_retries

    @property
    def threshold(self) -> int:
        return self._threshold

    def _require(self, content_id: str) -> ContentItem:
        item = self._contents.get(content_id)
        if item is None:
            raise NotFoundError(f"Content '{content_id}' not found")
        return item

    def report(self, content_id: str, pseudonym: str) -> ReportOutcome:
        """Report *content_id* on behalf of *pseudonym*.

        Reporting twice is a no-op that returns ``already_reported=True``.
        """
        for attempt in range(self._max_retries):
            item = self._require(content_id)
            if pseudonym in item.reporting_pseudonyms:
                return ReportOutcome(
                    flagged=item.flagged,
                    report_count=item.report_count,
                    already_reported=True,
                )

            reporters = item.reporting_pseudonyms + [pseudonym]
            crossing = not item.threshold_crossed and len(reporters) >= self._threshold
            changes = {"reporting_pseudonyms": reporters, "report_count": len(reporters)}
            if crossing:
                changes.update(flagged=True, flagged_at=utcnow_iso(), threshold_crossed=True)

            try:
                self._contents.update(content_id, changes, expected_version=item.version)
            except StaleWriteError:
                logger.warning("Report on %s raced (attempt %d); retrying", content_id, attempt + 1)
                continue

            if crossing:
                self._on_flagged(item, len(reporters))
            return ReportOutcome(
                flagged=item.flagged or crossing,
                report_count=len(reporters),
                newly_flagged=crossing,
            )

        raise StaleWriteError(f"Could not record report on '{content_id}' due to contention")

    def _on_flagged(self, item: ContentItem, report_count: int) -> None:
        logger.info("Content %s auto-flagged after %d reports", item.id, report_count)
        author = self._accounts.get_account_by_pseudonym(item.author_pseudonym)
        if author is None:
            logger.warning("No account owns the author pseudonym of flagged content %s", item.id)
        else:
            self._accounts.increment_reported_count(author.id)

        if self._audit is not None:
            try:
                self._audit.record(
                    actor="system",
                    action=CONTENT_AUTO_FLAGGED,
                    target_type="content",
                    target_id=item.id,
                    details={"report_count": report_count},
                )
            except OSError:
                logger.warning("Audit write failed for auto-flag of %s", item.id, exc_info=True)

    def has_reported(self, content_id: str, pseudonym: Optional[str]) -> bool:
        item = self._require(content_id)
        return bool(pseudonym) and pseudonym in item.reporting_pseudonyms
