from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from ogstudio.auth.config import AuthConfig
from ogstudio.auth.models import GitHubUser

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


class OAuth2RequestError(Exception):
    """
    The provider rejected the token request (e.g. `bad_verification_code`).

    GitHub reports these as a JSON body with an `error` field, usually with HTTP 200.
    """

    def __init__(self, code: str, description: Optional[str] = None):
        self.code = code
        self.description = description
        super().__init__(f"OAuth2 request failed: {code}" + (f" ({description})" if description else ""))


def build_authorize_url(cfg: AuthConfig, *, state: str) -> str:
    if not cfg.github_client_id:
        raise ValueError("GitHub client ID not configured")

    params = {
        "client_id": cfg.github_client_id,
        "state": state,
        "scope": cfg.github_scope,
    }
    if cfg.redirect_uri:
        params["redirect_uri"] = cfg.redirect_uri
    return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}"


def validate_authorization_code(cfg: AuthConfig, code: str) -> Dict[str, Any]:
    """
    Exchange an authorization code for tokens.

    Raises OAuth2RequestError when GitHub reports an OAuth error; any other failure
    (network, non-JSON body, missing token) surfaces as a generic exception.
    """
    if not cfg.github_client_id or not cfg.github_client_secret:
        raise ValueError("GitHub client ID/secret not configured")

    payload = {
        "client_id": cfg.github_client_id,
        "client_secret": cfg.github_client_secret,
        "code": code,
    }
    if cfg.redirect_uri:
        payload["redirect_uri"] = cfg.redirect_uri

    r = requests.post(GITHUB_TOKEN_URL, data=payload, headers={"Accept": "application/json"}, timeout=10)
    data = r.json()
    if not isinstance(data, dict):
        raise ValueError("Invalid token response")
    if data.get("error"):
        raise OAuth2RequestError(str(data["error"]), data.get("error_description"))
    if r.status_code >= 400:
        raise ValueError(f"Token exchange failed (status={r.status_code})")

    access_token = str(data.get("access_token") or "").strip()
    if not access_token:
        raise ValueError("Missing access_token in token response")
    data["access_token"] = access_token
    return data


def fetch_github_user(access_token: str) -> GitHubUser:
    r = requests.get(
        GITHUB_USER_URL,
        headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
        },
        timeout=10,
    )
    r.raise_for_status()
    return GitHubUser.model_validate(r.json())
