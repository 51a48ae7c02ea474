"""Per-account pseudonym derivation.

A pseudonym is ``HMAC-SHA256(secret, account_id || email [|| attempt])``
truncated to 32 hex characters (128 bits). The same account always maps
to the same pseudonym for a given secret, and without the secret the
token cannot be traced back to the account.

The pseudonym is derived once and cached on the account record. If the
derived value is already owned by another account, derivation is retried
with an attempt counter mixed into the input; the counter is stored next
to the pseudonym so that :class:`~anonboard.identity.resolver.IdentityResolver`
can re-derive it.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re

from anonboard.auth.models import Account
from anonboard.auth.store import AccountStore
from anonboard.errors import ConfigurationError, ConflictError

logger = logging.getLogger(__name__)

PSEUDONYM_LENGTH = 32
_PSEUDONYM_RE = re.compile(r"^[0-9a-f]{%d}$" % PSEUDONYM_LENGTH)
_SEP = b"\x1f"


def derive_pseudonym(account_id: str, email: str, secret: str, attempt: int = 0) -> str:
    """Return the pseudonym for an account.

    Raises :class:`ConfigurationError` if *secret* is empty. There is no
    fallback derivation.
    """
    if not secret or not secret.strip():
        raise ConfigurationError("Cannot derive pseudonym: server secret is not configured")
    if not account_id:
        raise ValueError("account_id is required")

    parts = [account_id.encode("utf-8"), email.strip().lower().encode("utf-8")]
    if attempt:
        parts.append(str(attempt).encode("ascii"))
    digest = hmac.new(secret.encode("utf-8"), _SEP.join(parts), hashlib.sha256).hexdigest()
    return digest[:PSEUDONYM_LENGTH]


def is_valid_pseudonym(value: object) -> bool:
    """True if *value* is a syntactically valid pseudonym."""
    return isinstance(value, str) and bool(_PSEUDONYM_RE.match(value))


class PseudonymDeriver:
    """Derive pseudonyms and cache them on account records."""

    def __init__(self, accounts: AccountStore, secret: str, max_attempts: int = 3) -> None:
        if not secret or not secret.strip():
            raise ConfigurationError("PseudonymDeriver requires a server secret")
        self._accounts = accounts
        self._secret = secret
        self._max_attempts = max_attempts

    def derive(self, account: Account) -> str:
        """Re-derive *account*'s pseudonym from scratch (no caching)."""
        return derive_pseudonym(
            account.id, account.email, self._secret, account.pseudonym_attempt
        )

    def ensure_pseudonym(self, account_id: str) -> str:
        """Return the account's pseudonym, deriving and persisting it if absent.

        Raises ``NotFoundError`` for an unknown account and
        ``ConflictError`` if every attempt collided with another account.
        """
        account = self._accounts.require_account(account_id)
        if account.pseudonym:
            return account.pseudonym

        for attempt in range(self._max_attempts):
            candidate = derive_pseudonym(account.id, account.email, self._secret, attempt)
            try:
                claimed = self._accounts.claim_pseudonym(account.id, candidate, attempt)
            except ConflictError:
                logger.warning(
                    "Pseudonym collision for account %s on attempt %d; re-deriving",
                    account.id, attempt,
                )
                continue

            if claimed is None:
                # Lost the race: someone else persisted a pseudonym first.
                winner = self._accounts.require_account(account.id)
                return winner.pseudonym

            logger.debug("Derived pseudonym for account %s (attempt %d)", account.id, attempt)
            return claimed.pseudonym

        raise ConflictError(
            f"Could not allocate a unique pseudonym for account {account.id} "
            f"after {self._max_attempts} attempts"
        )
