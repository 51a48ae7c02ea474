"""Exception taxonomy shared by every anonboard component."""

from __future__ import annotations


class AnonBoardError(Exception):
    """Base class for all anonboard errors."""


class ConfigurationError(AnonBoardError):
    """The deployment is misconfigured (e.g. no server secret).

    Never recoverable per request: the operation is refused.
    """


class NotFoundError(AnonBoardError):
    """An account, content item, or poll option does not exist."""


class IntegrityError(AnonBoardError):
    """Stored and re-derived pseudonyms disagree during identity resolution."""


class ConflictError(AnonBoardError):
    """A uniqueness constraint was violated on write."""


class StaleWriteError(ConflictError):
    """An optimistic version check failed; the document changed underneath us."""


class AccountBannedError(AnonBoardError):
    """A banned account attempted a write."""


class ForbiddenActionError(AnonBoardError):
    """A moderation action that policy does not allow."""


class PollClosedError(AnonBoardError):
    """A vote was cast after the poll ended."""


class BanPropagationError(AnonBoardError):
    """Bulk hide/unhide of a banned account's content failed on every attempt."""
