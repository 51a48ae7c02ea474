"""Tests for the report ledger and auto-flagging."""

import tempfile
import threading

import pytest

from anonboard.board import Board
from anonboard.config import Settings
from anonboard.errors import NotFoundError
from anonboard.security.audit_log import CONTENT_AUTO_FLAGGED


def _board(tmpdir: str, **overrides) -> Board:
    return Board(Settings(server_secret="S", data_dir=tmpdir, **overrides))


def _setup(board: Board, reporters: int):
    board.accounts.create_account("author@x.com", account_id="author")
    for i in range(reporters):
        board.accounts.create_account(f"r{i}@x.com", account_id=f"r{i}")
    return board.content.publish("author", "Questionable post")


def test_two_reports_do_not_flag():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 2)
        board.report("r0", post.id)
        outcome = board.report("r1", post.id)

        assert not outcome.flagged
        assert outcome.report_count == 2
        assert board.accounts.get_account("author").reported_count == 0


def test_third_report_flags_and_fourth_does_not_recount():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 4)
        board.report("r0", post.id)
        board.report("r1", post.id)

        third = board.report("r2", post.id)
        assert third.flagged and third.newly_flagged
        assert third.report_count == 3
        assert board.accounts.get_account("author").reported_count == 1
        assert board.contents.get(post.id).flagged_at

        fourth = board.report("r3", post.id)
        assert fourth.flagged and not fourth.newly_flagged
        assert fourth.report_count == 4
        assert board.accounts.get_account("author").reported_count == 1


def test_duplicate_report_is_noop():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 1)
        board.report("r0", post.id)
        again = board.report("r0", post.id)

        assert again.already_reported
        assert again.report_count == 1
        assert board.contents.get(post.id).report_count == 1


def test_viewer_reported_flag():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 2)
        board.report("r0", post.id)

        item = board.contents.get(post.id)
        assert board.content.view(item, board.content.viewer_pseudonym("r0")).viewer_reported
        assert not board.content.view(item, board.content.viewer_pseudonym("r1")).viewer_reported
        assert board.reports.has_reported(post.id, board.derive_pseudonym("r0"))


def test_flagged_content_stays_visible():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, report_threshold=1)
        post = _setup(board, 1)
        board.report("r0", post.id)

        item = board.contents.get(post.id)
        assert item.flagged and not item.hidden
        assert [v.id for v in board.content.feed()] == [post.id]


def test_auto_flag_is_audited():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, report_threshold=1)
        post = _setup(board, 1)
        board.report("r0", post.id)

        events = board.audit.query(action=CONTENT_AUTO_FLAGGED)
        assert len(events) == 1
        assert events[0].target_id == post.id


def test_report_unknown_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        _setup(board, 1)
        with pytest.raises(NotFoundError):
            board.report("r0", "missing")


def test_concurrent_reports_flag_exactly_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, ledger_max_retries=50)
        post = _setup(board, 6)
        pseudonyms = [board.derive_pseudonym(f"r{i}") for i in range(6)]

        barrier = threading.Barrier(len(pseudonyms))
        outcomes = []
        errors = []

        def worker(p):
            barrier.wait()
            try:
                outcomes.append(board.reports.report(post.id, p))
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(p,)) for p in pseudonyms]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        item = board.contents.get(post.id)
        assert item.flagged
        assert item.report_count == 6
        assert sum(1 for o in outcomes if o.newly_flagged) == 1
        assert board.accounts.get_account("author").reported_count == 1


def test_unflag_keeps_reports():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, report_threshold=1)
        post = _setup(board, 1)
        board.accounts.create_account("mod@x.com", account_id="mod", role="moderator")
        board.report("r0", post.id)

        item = board.moderation.clear_flag(post.id, "mod")
        assert not item.flagged
        assert item.report_count == 1
        assert board.accounts.get_account("author").reported_count == 1


def test_cleared_flag_is_not_reraised_by_later_reports():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 4)
        board.accounts.create_account("mod@x.com", account_id="mod", role="moderator")
        for i in range(3):
            board.report(f"r{i}", post.id)
        board.moderation.clear_flag(post.id, "mod")

        outcome = board.report("r3", post.id)
        assert not outcome.flagged and not outcome.newly_flagged
        assert outcome.report_count == 4
        assert not board.contents.get(post.id).flagged
        assert board.accounts.get_account("author").reported_count == 1
        assert len(board.audit.query(action=CONTENT_AUTO_FLAGGED)) == 1


def test_hidden_content_cannot_be_reported():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        post = _setup(board, 1)
        board.accounts.create_account("mod@x.com", account_id="mod", role="moderator")
        board.moderation.hide_content(post.id, "mod")
        with pytest.raises(NotFoundError):
            board.report("r0", post.id)
        assert board.contents.get(post.id).report_count == 0
