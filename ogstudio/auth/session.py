from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import psycopg
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from ogstudio.auth.config import AuthConfig
from ogstudio.auth.models import Session, SessionCookie, User
from ogstudio.auth.util import generate_id

SESSION_SALT = "ogstudio-session-v1"
SESSION_ID_LENGTH = 40


def session_cookie_name(cfg: AuthConfig) -> str:
    # `__Host-` requires Secure + Path=/ + no Domain; browsers may reject it on HTTP.
    return "__Host-ogstudio_session" if cfg.cookie_secure else "ogstudio_session"


def _serializer(cfg: AuthConfig) -> URLSafeTimedSerializer:
    if not cfg.session_secret:
        raise ValueError("Session signing is not configured (AUTH_SESSION_SECRET)")
    return URLSafeTimedSerializer(secret_key=cfg.session_secret, salt=SESSION_SALT)


def _cookie_attributes(cfg: AuthConfig, max_age: int) -> dict:
    return {
        "max_age": max_age,
        "httponly": True,
        "secure": cfg.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }


def create_session(conn: psycopg.Connection, cfg: AuthConfig, user_id: str) -> Session:
    """Insert a fresh session row for `user_id`. The caller owns the transaction."""
    session = Session(
        id=generate_id(SESSION_ID_LENGTH),
        user_id=user_id,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=cfg.session_ttl_seconds),
    )
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO user_session (id, user_id, expires_at)
            VALUES (%s, %s, %s)
            """,
            (session.id, session.user_id, session.expires_at),
        )
    return session


def create_session_cookie(cfg: AuthConfig, session: Session) -> SessionCookie:
    return SessionCookie(
        name=session_cookie_name(cfg),
        value=_serializer(cfg).dumps(session.id),
        attributes=_cookie_attributes(cfg, cfg.session_ttl_seconds),
    )


def create_blank_session_cookie(cfg: AuthConfig) -> SessionCookie:
    return SessionCookie(name=session_cookie_name(cfg), value="", attributes=_cookie_attributes(cfg, 0))


def read_session_id(cfg: AuthConfig, value: str | None) -> Optional[str]:
    if not value or not cfg.session_secret:
        return None
    try:
        session_id = _serializer(cfg).loads(value, max_age=cfg.session_ttl_seconds)
    except (BadSignature, BadTimeSignature):
        return None
    if not isinstance(session_id, str) or not session_id:
        return None
    return session_id


def validate_session(conn: psycopg.Connection, cfg: AuthConfig, value: str | None) -> Optional[Tuple[Session, User]]:
    """Resolve a signed cookie value to its live session and user."""
    session_id = read_session_id(cfg, value)
    if session_id is None:
        return None

    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT s.id, s.user_id, s.expires_at, u.github_id, u.name, u.avatar
            FROM user_session s
            JOIN app_user u ON u.id = s.user_id
            WHERE s.id = %s
            """,
            (session_id,),
        )
        row = cur.fetchone()
    if not row:
        return None

    sid, user_id, expires_at, github_id, name, avatar = row
    if expires_at <= datetime.now(timezone.utc):
        invalidate_session(conn, sid)
        return None

    session = Session(id=str(sid), user_id=str(user_id), expires_at=expires_at)
    user = User(id=str(user_id), github_id=int(github_id), name=str(name), avatar=avatar)
    return session, user


def invalidate_session(conn: psycopg.Connection, session_id: str) -> None:
    with conn.cursor() as cur:
        cur.execute("DELETE FROM user_session WHERE id = %s", (session_id,))
    conn.commit()
