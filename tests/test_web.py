"""Tests for the web API."""

import tempfile

from fastapi.testclient import TestClient

from anonboard.auth.models import Role
from anonboard.board import Board
from anonboard.config import Settings
from web.backend.app.main import app
from web.backend.app.middleware.auth import set_board


def _client(tmpdir: str):
    board = Board(Settings(server_secret="S", data_dir=tmpdir, report_threshold=2))
    set_board(board)
    tokens = {}
    for account_id, role in (("admin", Role.administrator), ("mod", Role.moderator),
                             ("u1", Role.member), ("u2", Role.member), ("u3", Role.member)):
        board.accounts.create_account(f"{account_id}@x.com", role=role, account_id=account_id)
        tokens[account_id] = {
            "Authorization": f"Bearer {board.accounts.create_session(account_id).token}"
        }
    return TestClient(app), board, tokens


def test_health_and_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, _ = _client(tmpdir)
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/").json()["name"] == "anonboard API"
        set_board(None)


def test_create_post_requires_auth():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, _ = _client(tmpdir)
        resp = client.post("/api/posts", json={"body": "hi"})
        assert resp.status_code == 401
        set_board(None)


def test_post_vote_and_feed():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, board, tokens = _client(tmpdir)
        resp = client.post("/api/posts", json={"body": "Exam tips #finals"}, headers=tokens["u1"])
        assert resp.status_code == 201
        post = resp.json()
        assert post["tags"] == ["finals"]
        assert post["is_anonymous"]
        pseudonym = board.accounts.get_account("u1").pseudonym
        assert pseudonym not in resp.text

        vote = client.post(f"/api/posts/{post['id']}/vote", json={"vote": "up"}, headers=tokens["u2"])
        assert vote.json() == {"up": 1, "down": 0, "viewer_vote": "up", "trending": False}

        feed = client.get("/api/posts", headers=tokens["u2"]).json()
        assert [p["id"] for p in feed["posts"]] == [post["id"]]
        assert feed["posts"][0]["viewer_vote"] == "up"
        assert not feed["has_more"]
        assert client.get("/api/posts").json()["posts"][0]["viewer_vote"] is None
        set_board(None)


def test_feed_pagination():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, tokens = _client(tmpdir)
        for i in range(3):
            client.post("/api/posts", json={"body": f"post {i}"}, headers=tokens["u1"])

        first = client.get("/api/posts", params={"limit": 2}).json()
        second = client.get("/api/posts", params={"limit": 2, "page": 2}).json()
        assert len(first["posts"]) == 2 and first["has_more"]
        assert len(second["posts"]) == 1 and not second["has_more"]
        set_board(None)


def test_comments_and_poll():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, tokens = _client(tmpdir)
        post = client.post(
            "/api/posts",
            json={"body": "Vote!", "poll": {"question": "Best?", "options": ["A", "B"]}},
            headers=tokens["u1"],
        ).json()

        comment = client.post(f"/api/posts/{post['id']}/comments", json={"body": "B for sure"},
                              headers=tokens["u2"])
        assert comment.status_code == 201
        assert len(client.get(f"/api/posts/{post['id']}/comments").json()) == 1
        assert client.get(f"/api/posts/{post['id']}").json()["comment_count"] == 1

        option_id = post["poll"]["options"][1]["id"]
        poll = client.post(f"/api/posts/{post['id']}/poll/vote", json={"option_id": option_id},
                           headers=tokens["u2"]).json()
        assert poll["total_votes"] == 1
        assert poll["viewer_choice"] == option_id

        missing = client.post(f"/api/posts/{post['id']}/poll/vote", json={"option_id": "nope"},
                              headers=tokens["u2"])
        assert missing.status_code == 404
        set_board(None)


def test_report_flags_and_admin_flow():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, tokens = _client(tmpdir)
        post = client.post("/api/posts", json={"body": "rude"}, headers=tokens["u1"]).json()

        first = client.post(f"/api/posts/{post['id']}/report", headers=tokens["u2"]).json()
        assert not first["flagged"]
        again = client.post(f"/api/posts/{post['id']}/report", headers=tokens["u2"]).json()
        assert again["already_reported"]
        second = client.post(f"/api/posts/{post['id']}/report", headers=tokens["u3"]).json()
        assert second["flagged"] and second["report_count"] == 2

        assert client.get("/api/admin/flagged", headers=tokens["u2"]).status_code == 403
        queue = client.get("/api/admin/flagged", headers=tokens["mod"]).json()
        assert queue["total"] == 1
        assert queue["items"][0]["report_count"] == 2

        resolved = client.post(f"/api/admin/content/{post['id']}/resolve", headers=tokens["mod"])
        assert resolved.status_code == 200
        assert resolved.json()["author"]["email"] == "u1@x.com"
        assert resolved.json()["author"]["reported_count"] == 1

        assert client.post("/api/admin/accounts/u1/ban", json={}, headers=tokens["mod"]).status_code == 403
        banned = client.post("/api/admin/accounts/u1/ban", json={"reason": "rude", "duration_days": 2},
                             headers=tokens["admin"])
        assert banned.json()["ban_state"] == "banned-temporary"
        assert client.get(f"/api/posts/{post['id']}").status_code == 404
        assert client.post("/api/posts", json={"body": "again"}, headers=tokens["u1"]).status_code == 403

        unbanned = client.post("/api/admin/accounts/u1/unban", headers=tokens["admin"])
        assert unbanned.json()["ban_state"] == "active"
        assert client.get(f"/api/posts/{post['id']}").status_code == 200

        audit = client.get("/api/admin/audit", params={"action": "identity.resolved"},
                           headers=tokens["admin"]).json()
        assert len(audit) == 1 and audit[0]["actor"] == "mod"
        set_board(None)


def test_admin_cannot_be_banned_over_http():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, board, tokens = _client(tmpdir)
        board.accounts.create_account("admin2@x.com", role=Role.administrator, account_id="admin2")
        resp = client.post("/api/admin/accounts/admin2/ban", json={}, headers=tokens["admin"])
        assert resp.status_code == 403
        set_board(None)


def test_moderator_hide_and_notes():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, tokens = _client(tmpdir)
        post = client.post("/api/posts", json={"body": "spam"}, headers=tokens["u1"]).json()

        hidden = client.post(f"/api/admin/content/{post['id']}/hide", headers=tokens["mod"]).json()
        assert hidden["hidden"] and hidden["moderator_hidden"]
        assert client.get("/api/posts").json()["posts"] == []

        notes = client.put(f"/api/admin/content/{post['id']}/notes", json={"notes": "spam link"},
                           headers=tokens["mod"]).json()
        assert notes["moderator_notes"] == "spam link"

        history = client.get("/api/admin/accounts/u1", headers=tokens["admin"]).json()
        assert history["total_items"] == 1
        assert client.get("/api/admin/overview", headers=tokens["mod"]).json()["hidden_items"] == 1

        vote = client.post(f"/api/posts/{post['id']}/vote", json={"vote": "up"}, headers=tokens["u2"])
        assert vote.status_code == 404
        assert client.post(f"/api/posts/{post['id']}/report", headers=tokens["u2"]).status_code == 404
        set_board(None)


def test_me():
    with tempfile.TemporaryDirectory() as tmpdir:
        client, _, tokens = _client(tmpdir)
        me = client.get("/api/auth/me", headers=tokens["mod"]).json()
        assert me["role"] == "moderator"
        assert client.post("/api/auth/logout", headers=tokens["mod"]).status_code == 200
        assert client.get("/api/auth/me", headers=tokens["mod"]).status_code == 401
        set_board(None)
