"""Up/down vote ledger for posts and comments.

Each content item keeps a ``pseudonym -> "up"|"down"`` mapping and a
tally derived from it. A pseudonym holds at most one vote per item:

- no existing vote: record it
- same value again: retract it (toggle off)
- opposite value: switch it

Writes are read-modify-write with an optimistic version check, so two
concurrent votes by the same pseudonym never both apply: the loser
re-reads and is applied against the new state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from anonboard.content.models import VoteTally, VoteValue
from anonboard.content.store import ContentStore
from anonboard.errors import NotFoundError, StaleWriteError

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    tally: VoteTally
    effective_vote: Optional[VoteValue]
    trending: bool


def apply_vote(
    votes: dict[str, str], pseudonym: str, value: VoteValue
) -> tuple[dict[str, str], Optional[VoteValue]]:
    """Return the new vote mapping and the caller's effective vote."""
    votes = dict(votes)
    existing = votes.get(pseudonym)
    if existing == value.value:
        del votes[pseudonym]
        return votes, None
    votes[pseudonym] = value.value
    return votes, value


def tally_of(votes: dict[str, str]) -> VoteTally:
    up = sum(1 for v in votes.values() if v == VoteValue.up.value)
    return VoteTally(up=up, down=len(votes) - up)


class VoteLedger:
    """Record votes against content items."""

    def __init__(self, contents: ContentStore, trending_threshold: int = 20, max_retries: int = 8) -> None:
        self._contents = contents
        self._trending_threshold = trending_threshold
        self._max_retries = max_retries

    def is_trending(self, tally: VoteTally) -> bool:
        return tally.up > self._trending_threshold

    def vote(self, content_id: str, pseudonym: str, value: VoteValue | str) -> VoteOutcome:
        """Cast, switch, or retract *pseudonym*'s vote on *content_id*.

        Voting on one's own content is allowed.
        """
        value = VoteValue(value)
        for attempt in range(self._max_retries):
            item = self._contents.get(content_id)
            if item is None:
                raise NotFoundError(f"Content '{content_id}' not found")

            votes, effective = apply_vote(item.voting_pseudonyms, pseudonym, value)
            tally = tally_of(votes)
            trending = self.is_trending(tally)
            try:
                self._contents.update(
                    content_id,
                    {
                        "voting_pseudonyms": votes,
                        "tally": {"up": tally.up, "down": tally.down},
                        "trending": trending,
                    },
                    expected_version=item.version,
                )
            except StaleWriteError:
                logger.warning("Vote on %s raced (attempt %d); retrying", content_id, attempt + 1)
                continue
            return VoteOutcome(tally=tally, effective_vote=effective, trending=trending)

        logger.warning("Vote on %s gave up after %d attempts", content_id, self._max_retries)
        raise StaleWriteError(f"Could not record vote on '{content_id}' due to contention")

    def vote_of(self, content_id: str, pseudonym: Optional[str]) -> Optional[VoteValue]:
        """Return *pseudonym*'s current vote on the item, if any."""
        item = self._contents.get(content_id)
        if item is None:
            raise NotFoundError(f"Content '{content_id}' not found")
        if not pseudonym:
            return None
        current = item.voting_pseudonyms.get(pseudonym)
        return VoteValue(current) if current else None
