"""
Credentials login with bearer session tokens.

A single administrator account is configured through settings.  A
successful login issues a random session token that is kept in memory
until it expires or the user logs out.  ``require_auth`` is the FastAPI
dependency guarding the admin routes.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ragadmin.config import Settings, settings
from ragadmin.errors import AuthError
from ragadmin.i18n import get_locale, translate
from ragadmin.models import LoginPayload, LoginResponse, MessageResponse, UserResponse

log = logging.getLogger("api.auth")

TOKEN_PREFIX = "rag_session_"

security = HTTPBearer(auto_error=False)


@dataclass
class Session:
    token: str
    user_id: str
    username: str
    expires_at: datetime


class SessionManager:
    """In-memory session registry for the configured admin account."""

    def __init__(self, cfg: Settings = settings) -> None:
        self.user_id = cfg.admin_user_id
        self.username = cfg.admin_username
        self._password = cfg.admin_password
        self.ttl = timedelta(seconds=cfg.session_ttl_seconds)
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def _purge(self, now: datetime) -> None:
        expired = [t for t, s in self._sessions.items() if s.expires_at <= now]
        for t in expired:
            del self._sessions[t]

    def login(self, username: str, password: str) -> Session:
        user_ok = secrets.compare_digest(username.encode(), self.username.encode())
        pass_ok = secrets.compare_digest(password.encode(), self._password.encode())
        if not (user_ok and pass_ok):
            log.warning(f"Failed login for '{username}'")
            raise AuthError("Invalid credentials")
        now = datetime.now(timezone.utc)
        session = Session(
            token=f"{TOKEN_PREFIX}{secrets.token_hex(32)}",
            user_id=self.user_id,
            username=self.username,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._purge(now)
            self._sessions[session.token] = session
        log.info(f"User '{username}' logged in")
        return session

    def validate(self, token: str) -> Optional[Session]:
        with self._lock:
            self._purge(datetime.now(timezone.utc))
            return self._sessions.get(token)

    def logout(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None


sessions = SessionManager()


def get_sessions() -> SessionManager:
    return sessions


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    manager: SessionManager = Depends(get_sessions),
) -> Session:
    """
    Dependency that requires a valid session token.

    Raises:
        HTTPException 401: missing, unknown or expired token
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session = manager.validate(credentials.credentials)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


# ---------- Routes ----------

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginPayload,
    manager: SessionManager = Depends(get_sessions),
    locale: str = Depends(get_locale),
) -> LoginResponse:
    try:
        session = manager.login(payload.username, payload.password)
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=translate("auth.invalidCredentials", locale),
        )
    return LoginResponse(
        token=session.token,
        user_id=session.user_id,
        username=session.username,
        expires_at=session.expires_at.isoformat(),
    )


@auth_router.post("/logout", response_model=MessageResponse)
def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    manager: SessionManager = Depends(get_sessions),
    locale: str = Depends(get_locale),
) -> MessageResponse:
    if credentials:
        manager.logout(credentials.credentials)
    return MessageResponse(message=translate("auth.loggedOut", locale))


@auth_router.get("/me", response_model=UserResponse)
def me(session: Session = Depends(require_auth)) -> UserResponse:
    return UserResponse(user_id=session.user_id, username=session.username)
