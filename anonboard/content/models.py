"""Content domain models: posts, comments, polls, and vote tallies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ContentKind(str, Enum):
    post = "post"
    comment = "comment"


class VoteValue(str, Enum):
    up = "up"
    down = "down"


@dataclass
class VoteTally:
    up: int = 0
    down: int = 0

    @property
    def score(self) -> int:
        return self.up - self.down


@dataclass
class PollOption:
    """A poll choice. ``id`` never changes after creation."""

    id: str
    text: str
    vote_count: int = 0


@dataclass
class Poll:
    """A poll attached to a post.

    Invariant: ``sum(o.vote_count for o in options) == len(voting_pseudonyms)``.
    """

    question: str
    options: list[PollOption] = field(default_factory=list)
    ends_at: str = ""
    voting_pseudonyms: dict[str, str] = field(default_factory=dict)

    @property
    def total_votes(self) -> int:
        return sum(o.vote_count for o in self.options)

    def option(self, option_id: str) -> Optional[PollOption]:
        for o in self.options:
            if o.id == option_id:
                return o
        return None


@dataclass
class ContentItem:
    """A post or comment.

    Authorship is recorded only as ``author_pseudonym``. ``hidden`` has
    two independent causes: a moderator hide and the author's ban.
    """

    id: str
    kind: ContentKind
    body: str
    author_pseudonym: str
    display_alias: str
    is_anonymous: bool = True
    parent_id: str = ""
    repost_of: str = ""
    repost_thoughts: str = ""
    tags: list[str] = field(default_factory=list)
    tally: VoteTally = field(default_factory=VoteTally)
    voting_pseudonyms: dict[str, str] = field(default_factory=dict)
    reporting_pseudonyms: list[str] = field(default_factory=list)
    flagged: bool = False
    flagged_at: str = ""
    threshold_crossed: bool = False
    moderator_hidden: bool = False
    ban_hidden: bool = False
    moderator_notes: str = ""
    trending: bool = False
    comment_count: int = 0
    repost_count: int = 0
    poll: Optional[Poll] = None
    created_at: str = ""
    version: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.kind, str):
            self.kind = ContentKind(self.kind)

    @property
    def hidden(self) -> bool:
        return self.moderator_hidden or self.ban_hidden

    @property
    def report_count(self) -> int:
        return len(self.reporting_pseudonyms)


@dataclass
class PollView:
    """Public projection of a poll for one viewer."""

    question: str
    options: list[PollOption]
    total_votes: int
    ends_at: str = ""
    viewer_choice: Optional[str] = None


@dataclass
class ContentView:
    """What a reader is allowed to see about a content item.

    Carries no pseudonyms; ``viewer_*`` fields describe only the
    requesting viewer's own interactions.
    """

    id: str
    kind: str
    body: str
    display_alias: str
    is_anonymous: bool
    up: int
    down: int
    trending: bool
    flagged: bool
    comment_count: int
    repost_count: int
    tags: list[str]
    created_at: str
    parent_id: str = ""
    repost_of: str = ""
    repost_thoughts: str = ""
    viewer_vote: Optional[str] = None
    viewer_reported: bool = False
    poll: Optional[PollView] = None
