"""Poll vote ledger.

A pseudonym has at most one choice per poll. Voting again moves the
choice; choosing the same option again leaves the counts unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from anonboard.auth.models import parse_utc
from anonboard.content.models import Poll
from anonboard.content.store import ContentStore
from anonboard.errors import NotFoundError, PollClosedError, StaleWriteError

logger = logging.getLogger(__name__)


class PollLedger:
    """Record poll choices against content items that carry a poll."""

    def __init__(self, contents: ContentStore, max_retries: int = 8) -> None:
        self._contents = contents
        self._max_retries = max_retries

    def _load_poll(self, content_id: str):
        item = self._contents.get(content_id)
        if item is None or item.poll is None:
            raise NotFoundError(f"No poll on content '{content_id}'")
        return item, item.poll

    def vote(self, content_id: str, pseudonym: str, option_id: str, now: Optional[datetime] = None) -> Poll:
        now = now or datetime.now(timezone.utc)
        for _ in range(self._max_retries):
            item, poll = self._load_poll(content_id)
            if poll.ends_at and parse_utc(poll.ends_at) <= now:
                raise PollClosedError(f"Poll on '{content_id}' has ended")
            if poll.option(option_id) is None:
                raise NotFoundError(f"Poll option '{option_id}' not found")

            previous = poll.voting_pseudonyms.get(pseudonym)
            if previous is not None and poll.option(previous) is not None:
                poll.option(previous).vote_count -= 1
            poll.option(option_id).vote_count += 1
            poll.voting_pseudonyms[pseudonym] = option_id

            try:
                self._contents.update(
                    content_id,
                    {"poll": ContentStore.poll_to_dict(poll)},
                    expected_version=item.version,
                )
            except StaleWriteError:
                logger.warning("Poll vote on %s raced; retrying", content_id)
                continue
            return poll

        raise StaleWriteError(f"Could not record poll vote on '{content_id}' due to contention")

    def choice_of(self, content_id: str, pseudonym: Optional[str]) -> Optional[str]:
        _, poll = self._load_poll(content_id)
        if not pseudonym:
            return None
        return poll.voting_pseudonyms.get(pseudonym)
