from datetime import datetime, timedelta, timezone

import pytest

from ragadmin.auth import TOKEN_PREFIX, SessionManager
from ragadmin.config import Settings
from ragadmin.errors import AuthError


class TestSessionManager:
    def test_login_validate_logout(self, sessions, cfg):
        session = sessions.login(cfg.admin_username, cfg.admin_password)
        assert session.token.startswith(TOKEN_PREFIX)
        assert session.user_id == cfg.admin_user_id
        assert sessions.validate(session.token) is session
        assert sessions.logout(session.token) is True
        assert sessions.validate(session.token) is None
        assert sessions.logout(session.token) is False

    @pytest.mark.parametrize("username, password", [("admin", "wrong"), ("root", "123456qq"), ("", "")])
    def test_bad_credentials(self, username, password):
        manager = SessionManager(Settings(_env_file=None, admin_username="admin", admin_password="123456qq"))
        with pytest.raises(AuthError):
            manager.login(username, password)

    def test_expired_session(self, sessions, cfg):
        session = sessions.login(cfg.admin_username, cfg.admin_password)
        session.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        assert sessions.validate(session.token) is None


class TestAuthRoutes:
    def test_login_and_me(self, client, auth_headers, cfg):
        r = client.get("/auth/me", headers=auth_headers)
        assert r.status_code == 200
        assert r.json() == {"user_id": cfg.admin_user_id, "username": cfg.admin_username}

    def test_login_failure_is_translated(self, client):
        r = client.post("/auth/login?lang=en", json={"username": "admin", "password": "nope"})
        assert r.status_code == 401
        assert r.json()["detail"].startswith("Invalid credentials")

    def test_missing_or_unknown_token(self, client):
        assert client.get("/auth/me").status_code == 401
        assert client.get("/auth/me", headers={"Authorization": "Bearer rag_session_bogus"}).status_code == 401

    def test_logout_invalidates_token(self, client, auth_headers):
        r = client.post("/auth/logout?lang=en", headers=auth_headers)
        assert r.status_code == 200
        assert r.json() == {"success": True, "message": "Signed out"}
        assert client.get("/auth/me", headers=auth_headers).status_code == 401
