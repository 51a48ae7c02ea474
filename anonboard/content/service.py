"""Publishing and reading content.

Published content is tagged with the author's pseudonym, never the
account id. The display alias is fixed at publish time: an alias from
the pool for anonymous content, otherwise the author's display name at
that moment.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import replace
from typing import Optional

from anonboard.auth.models import utcnow_iso
from anonboard.auth.store import AccountStore
from anonboard.content.models import (
    ContentItem,
    ContentKind,
    ContentView,
    Poll,
    PollOption,
    PollView,
)
from anonboard.content.store import ContentStore
from anonboard.errors import AccountBannedError, NotFoundError
from anonboard.identity.aliases import name_for
from anonboard.identity.pseudonym import PseudonymDeriver

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"#(\w+)")
TOP_MIN_UPVOTES = 5
FEED_TABS = ("recent", "trending", "top")


def extract_tags(body: str) -> list[str]:
    seen: list[str] = []
    for tag in _TAG_RE.findall(body):
        tag = tag.lower()
        if tag not in seen:
            seen.append(tag)
    return seen


class ContentService:
    """Publish posts and comments; build per-viewer projections."""

    def __init__(self, accounts: AccountStore, contents: ContentStore, deriver: PseudonymDeriver) -> None:
        self._accounts = accounts
        self._contents = contents
        self._deriver = deriver

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(
        self,
        account_id: str,
        body: str,
        *,
        anonymous: bool = True,
        kind: ContentKind | str = ContentKind.post,
        parent_id: str = "",
        poll: Optional[dict] = None,
        repost_of: str = "",
        repost_thoughts: str = "",
    ) -> ContentItem:
        """Create a post or comment.

        *poll* is ``{"question": str, "options": [str, ...], "ends_at": iso}``.
        """
        kind = ContentKind(kind)
        account = self._accounts.require_account(account_id)
        if account.is_banned:
            raise AccountBannedError("Account is banned and cannot publish")
        if not body or not body.strip():
            raise ValueError("Content body must not be empty")
        if kind is ContentKind.comment:
            if not parent_id:
                raise ValueError("A comment needs a parent post")
            if poll is not None or repost_of:
                raise ValueError("Comments cannot carry polls or reposts")
        if parent_id and self._contents.get(parent_id) is None:
            raise NotFoundError(f"Parent content '{parent_id}' not found")
        if repost_of and self._contents.get(repost_of) is None:
            raise NotFoundError(f"Reposted content '{repost_of}' not found")

        pseudonym = self._deriver.ensure_pseudonym(account.id)
        item = ContentItem(
            id=uuid.uuid4().hex,
            kind=kind,
            body=body.strip(),
            author_pseudonym=pseudonym,
            display_alias=name_for(pseudonym) if anonymous else account.display_name,
            is_anonymous=anonymous,
            parent_id=parent_id if kind is ContentKind.comment else "",
            repost_of=repost_of,
            repost_thoughts=repost_thoughts,
            tags=extract_tags(body),
            poll=self._build_poll(poll) if poll is not None else None,
            created_at=utcnow_iso(),
        )
        item = self._contents.create(item)

        if item.parent_id:
            self._contents.increment(item.parent_id, "comment_count")
        if item.repost_of:
            self._contents.increment(item.repost_of, "repost_count")

        logger.info("Published %s %s", item.kind.value, item.id)
        return item

    @staticmethod
    def _build_poll(data: dict) -> Poll:
        question = (data.get("question") or "").strip()
        options = [str(o).strip() for o in data.get("options", []) if str(o).strip()]
        if not question:
            raise ValueError("A poll needs a question")
        if len(options) < 2:
            raise ValueError("A poll needs at least two options")
        return Poll(
            question=question,
            options=[PollOption(id=uuid.uuid4().hex[:12], text=text) for text in options],
            ends_at=data.get("ends_at", "") or "",
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_item(self, content_id: str) -> ContentItem:
        item = self._contents.get(content_id)
        if item is None:
            raise NotFoundError(f"Content '{content_id}' not found")
        return item

    def viewer_pseudonym(self, account_id: Optional[str]) -> Optional[str]:
        """Pseudonym of the reader, or None for anonymous readers.

        Reading never derives a pseudonym; an account that has never
        written anything has no interactions to show.
        """
        if not account_id:
            return None
        account = self._accounts.get_account(account_id)
        if account is None or not account.pseudonym:
            return None
        return account.pseudonym

    @staticmethod
    def view(item: ContentItem, viewer_pseudonym: Optional[str] = None) -> ContentView:
        """Public projection of *item* for one viewer."""
        poll_view = None
        if item.poll is not None:
            poll_view = PollView(
                question=item.poll.question,
                options=[replace(o) for o in item.poll.options],
                total_votes=item.poll.total_votes,
                ends_at=item.poll.ends_at,
                viewer_choice=item.poll.voting_pseudonyms.get(viewer_pseudonym) if viewer_pseudonym else None,
            )
        return ContentView(
            id=item.id,
            kind=item.kind.value,
            body=item.body,
            display_alias=item.display_alias,
            is_anonymous=item.is_anonymous,
            up=item.tally.up,
            down=item.tally.down,
            trending=item.trending,
            flagged=item.flagged,
            comment_count=item.comment_count,
            repost_count=item.repost_count,
            tags=list(item.tags),
            created_at=item.created_at,
            parent_id=item.parent_id,
            repost_of=item.repost_of,
            repost_thoughts=item.repost_thoughts,
            viewer_vote=item.voting_pseudonyms.get(viewer_pseudonym) if viewer_pseudonym else None,
            viewer_reported=bool(viewer_pseudonym) and viewer_pseudonym in item.reporting_pseudonyms,
            poll=poll_view,
        )

    def feed(
        self,
        viewer_account_id: Optional[str] = None,
        tab: str = "recent",
        page: int = 1,
        limit: int = 20,
    ) -> list[ContentView]:
        """Visible top-level posts for a feed tab."""
        if tab not in FEED_TABS:
            raise ValueError(f"Unknown feed tab '{tab}'")
        items = self._contents.find(lambda c: c.kind is ContentKind.post and not c.hidden)
        items.sort(key=lambda c: c.created_at, reverse=True)
        if tab == "trending":
            items = [c for c in items if c.trending]
        elif tab == "top":
            items = [c for c in items if c.tally.up >= TOP_MIN_UPVOTES]
            items.sort(key=lambda c: (-c.tally.up, c.tally.down))

        start = (max(page, 1) - 1) * limit
        viewer = self.viewer_pseudonym(viewer_account_id)
        return [self.view(c, viewer) for c in items[start:start + limit]]

    def comments(self, post_id: str, viewer_account_id: Optional[str] = None) -> list[ContentView]:
        self.get_item(post_id)
        items = self._contents.find(
            lambda c: c.kind is ContentKind.comment and c.parent_id == post_id and not c.hidden
        )
        items.sort(key=lambda c: c.created_at, reverse=True)
        viewer = self.viewer_pseudonym(viewer_account_id)
        return [self.view(c, viewer) for c in items]
