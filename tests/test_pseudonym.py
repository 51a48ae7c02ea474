"""Tests for pseudonym derivation and display aliases."""

import tempfile

import pytest

from anonboard.board import Board
from anonboard.config import Settings
from anonboard.errors import ConfigurationError, ConflictError
from anonboard.identity.aliases import ALIAS_POOL, name_for
from anonboard.identity.pseudonym import (
    PSEUDONYM_LENGTH,
    PseudonymDeriver,
    derive_pseudonym,
    is_valid_pseudonym,
)


def _board(tmpdir: str, **overrides) -> Board:
    return Board(Settings(server_secret="S", data_dir=tmpdir, **overrides))


def test_derivation_is_deterministic():
    first = derive_pseudonym("u1", "a@x.com", "S")
    assert first == derive_pseudonym("u1", "a@x.com", "S")
    assert len(first) == PSEUDONYM_LENGTH
    assert is_valid_pseudonym(first)


def test_email_is_normalized():
    assert derive_pseudonym("u1", " A@X.com ", "S") == derive_pseudonym("u1", "a@x.com", "S")


def test_distinct_inputs_give_distinct_pseudonyms():
    base = derive_pseudonym("u1", "a@x.com", "S")
    assert derive_pseudonym("u2", "a@x.com", "S") != base
    assert derive_pseudonym("u1", "b@x.com", "S") != base
    assert derive_pseudonym("u1", "a@x.com", "T") != base
    assert derive_pseudonym("u1", "a@x.com", "S", attempt=1) != base


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigurationError):
        derive_pseudonym("u1", "a@x.com", "")
    with pytest.raises(ConfigurationError):
        derive_pseudonym("u1", "a@x.com", "   ")


def test_empty_account_id_rejected():
    with pytest.raises(ValueError):
        derive_pseudonym("", "a@x.com", "S")


def test_invalid_pseudonym_values():
    assert not is_valid_pseudonym("")
    assert not is_valid_pseudonym("0" * 31)
    assert not is_valid_pseudonym("G" * 32)
    assert not is_valid_pseudonym(None)


def test_deriver_requires_secret():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        with pytest.raises(ConfigurationError):
            PseudonymDeriver(board.accounts, "")


def test_ensure_pseudonym_caches_on_account():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        board.accounts.create_account("a@x.com", account_id="u1")

        p = board.derive_pseudonym("u1")
        assert p == derive_pseudonym("u1", "a@x.com", "S")
        assert board.accounts.get_account("u1").pseudonym == p
        assert board.derive_pseudonym("u1") == p
        assert board.accounts.get_account_by_pseudonym(p).id == "u1"


def test_pseudonym_survives_restart():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        board.accounts.create_account("a@x.com", account_id="u1")
        p = board.derive_pseudonym("u1")

        reopened = _board(tmpdir)
        assert reopened.derive_pseudonym("u1") == p
        assert reopened.deriver.derive(reopened.accounts.get_account("u1")) == p


def test_display_name_change_keeps_pseudonym():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        board.accounts.create_account("a@x.com", account_id="u1")
        p = board.derive_pseudonym("u1")
        board.accounts.update_display_name("u1", "Someone Else")
        assert board.derive_pseudonym("u1") == p


def test_collision_rederives_with_attempt_counter():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir)
        board.accounts.create_account("a@x.com", account_id="u1")
        board.accounts.create_account("b@x.com", account_id="u2")
        taken = derive_pseudonym("u1", "a@x.com", "S")
        board.db.update_one("accounts", "u2", {"pseudonym": taken})

        p = board.derive_pseudonym("u1")
        account = board.accounts.get_account("u1")
        assert p != taken
        assert p == derive_pseudonym("u1", "a@x.com", "S", attempt=1)
        assert account.pseudonym_attempt == 1
        assert board.deriver.derive(account) == p


def test_collision_exhaustion_raises_conflict():
    with tempfile.TemporaryDirectory() as tmpdir:
        board = _board(tmpdir, pseudonym_max_attempts=1)
        board.accounts.create_account("a@x.com", account_id="u1")
        board.accounts.create_account("b@x.com", account_id="u2")
        board.db.update_one(
            "accounts", "u2", {"pseudonym": derive_pseudonym("u1", "a@x.com", "S")}
        )

        with pytest.raises(ConflictError):
            board.derive_pseudonym("u1")
        assert board.accounts.get_account("u1").pseudonym == ""


def test_alias_comes_from_pool_and_is_stable():
    p = derive_pseudonym("u1", "a@x.com", "S")
    assert name_for(p) in ALIAS_POOL
    assert name_for(p) == name_for(p)
    assert len(ALIAS_POOL) == 18


def test_alias_uses_leading_hex_digits():
    assert name_for("00000000" + "f" * 24) == ALIAS_POOL[0]
    assert name_for("00000013" + "0" * 24) == ALIAS_POOL[19 % 18]


def test_alias_rejects_invalid_pseudonym():
    with pytest.raises(ValueError):
        name_for("not-a-pseudonym")
