from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

GITHUB_OAUTH_STATE_COOKIE = "github_oauth_state"
GITHUB_OAUTH_STATE_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class AuthConfig:
    # GitHub OAuth app credentials
    github_client_id: Optional[str]
    github_client_secret: Optional[str]
    github_scope: str

    # Session configuration
    public_base_url: Optional[str]  # Used to build the OAuth redirect_uri
    session_secret: Optional[str]  # Required for cookie signing
    session_ttl_seconds: int
    cookie_secure: bool

    @property
    def github_enabled(self) -> bool:
        """GitHub login is enabled when both client credentials are configured."""
        return bool(self.github_client_id and self.github_client_secret)

    @property
    def redirect_uri(self) -> Optional[str]:
        base = (self.public_base_url or "").strip().rstrip("/")
        if not base:
            return None
        return f"{base}/api/auth/github/callback"


def _env_str(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    GitHub login is enabled if GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET are set.
    """
    public_base_url = _env_str("AUTH_PUBLIC_BASE_URL")
    cookie_secure_env = (os.getenv("AUTH_COOKIE_SECURE", "") or "").strip().lower()
    if cookie_secure_env in ("1", "true", "yes", "on"):
        cookie_secure = True
    elif cookie_secure_env in ("0", "false", "no", "off"):
        cookie_secure = False
    else:
        # Default: secure cookies when base URL is https; otherwise allow local dev.
        cookie_secure = True if (public_base_url or "").startswith("https://") else False

    ttl_raw = (os.getenv("AUTH_SESSION_TTL_SECONDS", "") or "").strip() or "2592000"  # 30d default
    try:
        ttl = int(float(ttl_raw))
    except ValueError:
        ttl = 2592000
    if ttl <= 60:
        ttl = 60

    return AuthConfig(
        github_client_id=_env_str("GITHUB_CLIENT_ID"),
        github_client_secret=_env_str("GITHUB_CLIENT_SECRET"),
        github_scope=_env_str("GITHUB_OAUTH_SCOPE") or "read:user",
        public_base_url=public_base_url,
        session_secret=_env_str("AUTH_SESSION_SECRET"),
        session_ttl_seconds=ttl,
        cookie_secure=cookie_secure,
    )
