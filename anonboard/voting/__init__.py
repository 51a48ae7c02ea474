"""Per-pseudonym vote ledgers for content items and polls."""

from anonboard.voting.ledger import VoteLedger, VoteOutcome
from anonboard.voting.polls import PollLedger

__all__ = ["PollLedger", "VoteLedger", "VoteOutcome"]
