"""Ban propagation: hide or restore everything a banned account authored.

Content is matched by ``author_pseudonym`` and updated with one bulk
write. That write is all-or-nothing, and it is retried as a unit. Only
the ``ban_hidden`` flag is touched, so lifting a ban restores exactly
the pre-ban visibility (moderator hides survive).
"""

from __future__ import annotations

import logging

from anonboard.auth.store import AccountStore
from anonboard.content.store import ContentStore
from anonboard.errors import BanPropagationError

logger = logging.getLogger(__name__)


class BanPropagator:
    def __init__(self, accounts: AccountStore, contents: ContentStore, max_attempts: int = 3) -> None:
        self._accounts = accounts
        self._contents = contents
        self._max_attempts = max_attempts

    def apply_ban(self, account_id: str) -> int:
        """Hide all content of *account_id*. Returns the number of items changed."""
        return self._propagate(account_id, hidden=True)

    def lift_ban(self, account_id: str) -> int:
        """Restore all content of *account_id*. Returns the number of items changed."""
        return self._propagate(account_id, hidden=False)

    def _propagate(self, account_id: str, hidden: bool) -> int:
        account = self._accounts.require_account(account_id)
        if not account.pseudonym:
            # Never derived: the account has authored nothing.
            return 0

        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                changed = self._contents.set_ban_hidden(account.pseudonym, hidden)
            except OSError as exc:
                last_error = exc
                logger.warning(
                    "Ban propagation for account %s failed (attempt %d/%d): %s",
                    account_id, attempt, self._max_attempts, exc,
                )
                continue
            logger.info(
                "%s %d item(s) for account %s",
                "Hid" if hidden else "Restored", changed, account_id,
            )
            return changed

        logger.error("Ban propagation for account %s failed on every attempt", account_id)
        raise BanPropagationError(
            f"Could not {'hide' if hidden else 'restore'} content for account {account_id}"
        ) from last_error
