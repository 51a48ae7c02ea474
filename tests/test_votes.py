"""Tests for the vote and poll ledgers."""

import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from anonboard.board import Board
from anonboard.config import Settings
from anonboard.content.models import VoteValue
from anonboard.errors import AccountBannedError, NotFoundError, PollClosedError, StaleWriteError
from anonboard.voting.ledger import apply_vote, tally_of


def _board(tmpdir: str, **overrides) -> Board:
    return Board(Settings(server_secret="S", data_dir=tmpdir, **overrides))


def _setup(board: Board, voters: int = 1):
    board.accounts.create_account("author@x.com", account_id="author")
    for i in range(voters):
        board.accounts.create_account(f"v{i}@x.com", account_id=f"v{i}")
    return board.content.publish("author", "Hello campus")


def test_apply_vote_laws():
    votes, effective = apply_vote({}, "p", VoteValue.up)
    assert votes == {"p": "up"} and effective is VoteValue.up
    votes, effective = apply_vote(votes, "p", VoteValue.up)
    assert votes == {} and effective is None
    votes, effective = apply_vote({"p": "up", "q": "down"}, "p", VoteValue.down)
    assert tally_of(votes).up == 0 and tally_of(votes).down == 2


def test_same_vote_twice_toggles_off():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board)

        first = board.vote("v0", post.id, "up")
        assert (first.tally.up, first.tally.down) == (1, 0)
        assert first.effective_vote is VoteValue.up

        second = board.vote("v0", post.id, "up")
        assert (second.tally.up, second.tally.down) == (0, 0)
        assert second.effective_vote is None


def test_opposite_vote_switches():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board)

        board.vote("v0", post.id, "up")
        outcome = board.vote("v0", post.id, "down")
        assert (outcome.tally.up, outcome.tally.down) == (0, 1)
        assert outcome.effective_vote is VoteValue.down


def test_tally_matches_vote_map():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, voters=4)
        board.vote("v0", post.id, "up")
        board.vote("v1", post.id, "up")
        board.vote("v2", post.id, "down")
        board.vote("v3", post.id, "up")
        board.vote("v3", post.id, "up")

        item = board.contents.get(post.id)
        assert (item.tally.up, item.tally.down) == (2, 1)
        assert len(item.voting_pseudonyms) == 3


def test_vote_on_own_content_allowed():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board)
        outcome = board.vote("author", post.id, "up")
        assert outcome.tally.up == 1


def test_viewer_sees_only_own_vote():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, voters=2)
        board.vote("v0", post.id, "down")

        item = board.contents.get(post.id)
        mine = board.content.view(item, board.content.viewer_pseudonym("v0"))
        other = board.content.view(item, board.content.viewer_pseudonym("v1"))
        anon = board.content.view(item, None)
        assert mine.viewer_vote == "down"
        assert other.viewer_vote is None
        assert anon.viewer_vote is None
        assert board.votes.vote_of(post.id, board.derive_pseudonym("v0")) is VoteValue.down


def test_trending_above_threshold():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, trending_threshold=2)
        post = _setup(board, voters=3)
        assert not board.vote("v0", post.id, "up").trending
        assert not board.vote("v1", post.id, "up").trending
        assert board.vote("v2", post.id, "up").trending
        assert not board.vote("v2", post.id, "up").trending


def test_vote_unknown_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        _setup(board)
        with pytest.raises(NotFoundError):
            board.vote("v0", "missing", "up")


def test_banned_account_cannot_vote():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board)
        board.accounts.create_account("admin@x.com", account_id="admin", role="administrator")
        board.apply_ban("v0", "admin")
        with pytest.raises(AccountBannedError):
            board.vote("v0", post.id, "up")


def test_stale_write_is_retried():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, voters=2)
        pseudonym = board.derive_pseudonym("v0")
        other = board.derive_pseudonym("v1")

        real_update = board.contents.update
        calls = {"n": 0}

        def racing_update(content_id, changes, expected_version=None):
            calls["n"] += 1
            if calls["n"] == 1:
                # Another voter commits between our read and our write.
                real_update(content_id, {"voting_pseudonyms": {other: "up"}, "tally": {"up": 1, "down": 0}})
            return real_update(content_id, changes, expected_version=expected_version)

        board.contents.update = racing_update
        outcome = board.votes.vote(post.id, pseudonym, "up")
        assert (outcome.tally.up, outcome.tally.down) == (2, 0)
        assert calls["n"] == 2


def test_contention_gives_up_after_max_retries():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, ledger_max_retries=2)
        post = _setup(board)

        def always_stale(content_id, changes, expected_version=None):
            raise StaleWriteError("busy")

        board.contents.update = always_stale
        with pytest.raises(StaleWriteError):
            board.votes.vote(post.id, "a" * 32, "up")


# ---------------------------------------------------------------------------
# Polls
# ---------------------------------------------------------------------------


def _poll_post(board: Board, ends_at: str = ""):
    board.accounts.create_account("author@x.com", account_id="author")
    board.accounts.create_account("v0@x.com", account_id="v0")
    board.accounts.create_account("v1@x.com", account_id="v1")
    return board.content.publish(
        "author",
        "Best study spot?",
        poll={"question": "Where?", "options": ["Library", "Cafe", "Dorm"], "ends_at": ends_at},
    )


def test_poll_vote_moves_choice():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _poll_post(board)
        library, cafe, _ = (o.id for o in post.poll.options)

        board.vote_poll("v0", post.id, library)
        board.vote_poll("v1", post.id, library)
        poll = board.vote_poll("v0", post.id, cafe)

        counts = {o.id: o.vote_count for o in poll.options}
        assert counts[library] == 1 and counts[cafe] == 1
        assert poll.total_votes == len(poll.voting_pseudonyms) == 2
        assert board.polls.choice_of(post.id, board.derive_pseudonym("v0")) == cafe


def test_poll_same_choice_is_unchanged():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _poll_post(board)
        library = post.poll.options[0].id

        board.vote_poll("v0", post.id, library)
        poll = board.vote_poll("v0", post.id, library)
        assert poll.option(library).vote_count == 1
        assert poll.total_votes == 1


def test_poll_unknown_option_and_missing_poll():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _poll_post(board)
        plain = board.content.publish("author", "No poll here")

        with pytest.raises(NotFoundError):
            board.vote_poll("v0", post.id, "nope")
        with pytest.raises(NotFoundError):
            board.vote_poll("v0", plain.id, post.poll.options[0].id)


def test_poll_closed():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        ended = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        post = _poll_post(board, ends_at=ended)
        with pytest.raises(PollClosedError):
            board.vote_poll("v0", post.id, post.poll.options[0].id)


def test_poll_needs_two_options():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        board.accounts.create_account("author@x.com", account_id="author")
        with pytest.raises(ValueError):
            board.content.publish("author", "Poll", poll={"question": "Q?", "options": ["Only"]})


def test_hidden_content_rejects_votes():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _poll_post(board)
        board.accounts.create_account("mod@x.com", account_id="mod", role="moderator")
        board.moderation.hide_content(post.id, "mod")

        with pytest.raises(NotFoundError):
            board.vote("v0", post.id, "up")
        with pytest.raises(NotFoundError):
            board.vote_poll("v0", post.id, post.poll.options[0].id)
        item = board.contents.get(post.id)
        assert item.voting_pseudonyms == {} and item.poll.total_votes == 0

        board.moderation.unhide_content(post.id, "mod")
        assert board.vote("v0", post.id, "up").tally.up == 1
