from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class GitHubUser(BaseModel):
    """Subset of https://docs.github.com/en/rest/users/users#get-the-authenticated-user."""

    id: int
    login: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.login


@dataclass(frozen=True)
class User:
    """Local user linked to exactly one GitHub account."""

    id: str
    github_id: int
    name: str
    avatar: Optional[str] = None


@dataclass(frozen=True)
class Session:
    id: str
    user_id: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionCookie:
    name: str
    value: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    def set_cookie_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for `Response.set_cookie`."""
        return {"key": self.name, "value": self.value, **self.attributes}
