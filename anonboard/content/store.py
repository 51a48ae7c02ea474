"""Content storage on top of :class:`DocumentStore` (``content`` collection)."""

from __future__ import annotations

from typing import Callable, Optional

from anonboard.content.models import ContentItem, Poll, PollOption, VoteTally
from anonboard.storage import DocumentStore

CONTENT = "content"


class ContentStore:
    """Typed access to content documents."""

    def __init__(self, db: DocumentStore) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def _poll_from_dict(d: Optional[dict]) -> Optional[Poll]:
        if not d:
            return None
        return Poll(
            question=d.get("question", ""),
            options=[
                PollOption(id=o["id"], text=o.get("text", ""), vote_count=o.get("vote_count", 0))
                for o in d.get("options", [])
            ],
            ends_at=d.get("ends_at", ""),
            voting_pseudonyms=dict(d.get("voting_pseudonyms", {})),
        )

    @staticmethod
    def poll_to_dict(p: Optional[Poll]) -> Optional[dict]:
        if p is None:
            return None
        return {
            "question": p.question,
            "options": [
                {"id": o.id, "text": o.text, "vote_count": o.vote_count} for o in p.options
            ],
            "ends_at": p.ends_at,
            "voting_pseudonyms": dict(p.voting_pseudonyms),
        }

    @classmethod
    def item_from_dict(cls, d: dict) -> ContentItem:
        tally = d.get("tally", {})
        return ContentItem(
            id=d["id"],
            kind=d.get("kind", "post"),
            body=d.get("body", ""),
            author_pseudonym=d["author_pseudonym"],
            display_alias=d.get("display_alias", ""),
            is_anonymous=d.get("is_anonymous", True),
            parent_id=d.get("parent_id", ""),
            repost_of=d.get("repost_of", ""),
            repost_thoughts=d.get("repost_thoughts", ""),
            tags=list(d.get("tags", [])),
            tally=VoteTally(up=tally.get("up", 0), down=tally.get("down", 0)),
            voting_pseudonyms=dict(d.get("voting_pseudonyms", {})),
            reporting_pseudonyms=list(d.get("reporting_pseudonyms", [])),
            flagged=d.get("flagged", False),
            flagged_at=d.get("flagged_at", ""),
            threshold_crossed=d.get("threshold_crossed", d.get("flagged", False)),
            moderator_hidden=d.get("moderator_hidden", False),
            ban_hidden=d.get("ban_hidden", False),
            moderator_notes=d.get("moderator_notes", ""),
            trending=d.get("trending", False),
            comment_count=d.get("comment_count", 0),
            repost_count=d.get("repost_count", 0),
            poll=cls._poll_from_dict(d.get("poll")),
            created_at=d.get("created_at", ""),
            version=d.get("_version", 0),
        )

    @classmethod
    def item_to_dict(cls, c: ContentItem) -> dict:
        return {
            "id": c.id,
            "kind": c.kind.value,
            "body": c.body,
            "author_pseudonym": c.author_pseudonym,
            "display_alias": c.display_alias,
            "is_anonymous": c.is_anonymous,
            "parent_id": c.parent_id,
            "repost_of": c.repost_of,
            "repost_thoughts": c.repost_thoughts,
            "tags": list(c.tags),
            "tally": {"up": c.tally.up, "down": c.tally.down},
            "voting_pseudonyms": dict(c.voting_pseudonyms),
            "reporting_pseudonyms": list(c.reporting_pseudonyms),
            "report_count": c.report_count,
            "flagged": c.flagged,
            "flagged_at": c.flagged_at,
            "threshold_crossed": c.threshold_crossed,
            "moderator_hidden": c.moderator_hidden,
            "ban_hidden": c.ban_hidden,
            "moderator_notes": c.moderator_notes,
            "trending": c.trending,
            "comment_count": c.comment_count,
            "repost_count": c.repost_count,
            "poll": cls.poll_to_dict(c.poll),
            "created_at": c.created_at,
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, content_id: str) -> Optional[ContentItem]:
        d = self._db.get(CONTENT, content_id)
        return self.item_from_dict(d) if d else None

    def find(self, predicate: Optional[Callable[[ContentItem], bool]] = None) -> list[ContentItem]:
        items = [self.item_from_dict(d) for d in self._db.find(CONTENT)]
        if predicate is None:
            return items
        return [c for c in items if predicate(c)]

    def by_author(self, pseudonym: str) -> list[ContentItem]:
        return self.find(lambda c: c.author_pseudonym == pseudonym)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, item: ContentItem) -> ContentItem:
        return self.item_from_dict(self._db.insert(CONTENT, self.item_to_dict(item)))

    def update(
        self, content_id: str, changes: dict, expected_version: Optional[int] = None
    ) -> Optional[ContentItem]:
        """Conditional single-item update; see :meth:`DocumentStore.update_one`."""
        d = self._db.update_one(CONTENT, content_id, changes, expected_version=expected_version)
        return self.item_from_dict(d) if d else None

    def increment(self, content_id: str, field: str, amount: int = 1) -> Optional[ContentItem]:
        d = self._db.increment(CONTENT, content_id, field, amount)
        return self.item_from_dict(d) if d else None

    def set_ban_hidden(self, author_pseudonym: str, hidden: bool) -> int:
        """Bulk-set ``ban_hidden`` on everything authored under *author_pseudonym*."""
        return self._db.update_many(
            CONTENT,
            lambda d: d.get("author_pseudonym") == author_pseudonym,
            {"ban_hidden": hidden},
        )
