from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from ogstudio.auth.config import load_auth_config
from ogstudio.auth.models import User

logger = logging.getLogger(__name__)


def authenticate_request(request: Request) -> Optional[User]:
    """
    Authenticate a request and return its User if the session cookie is valid.

    Fails closed: a missing database or any lookup error means "not authenticated".
    """
    from ogstudio.auth.session import session_cookie_name, validate_session
    from ogstudio.db import get_connection

    cfg = load_auth_config()
    value = request.cookies.get(session_cookie_name(cfg))
    if not value:
        return None

    try:
        conn = get_connection()
    except Exception as e:
        logger.warning("Session lookup failed: %s", str(e))
        return None
    if conn is None:
        return None

    try:
        resolved = validate_session(conn, cfg, value)
    except Exception as e:
        logger.warning("Session lookup failed: %s", str(e))
        return None
    finally:
        conn.close()

    if resolved is None:
        return None
    _, user = resolved
    return user
