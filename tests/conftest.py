"""
Pytest config.

Local imports like `import ogstudio` rely on the repo root being on sys.path. When
invoking a global `pytest` entrypoint that doesn't happen reliably during collection,
so we pin it here.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture(autouse=True)
def _auth_env(monkeypatch: pytest.MonkeyPatch):
    """Deterministic auth config for every test; cached config is reset around each test."""
    from ogstudio.auth.config import load_auth_config

    monkeypatch.setenv("AUTH_SESSION_SECRET", "test-secret-key-for-testing-purposes-only")
    monkeypatch.setenv("AUTH_PUBLIC_BASE_URL", "http://localhost:8080")
    monkeypatch.setenv("GITHUB_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("GITHUB_CLIENT_SECRET", "test-client-secret")
    monkeypatch.delenv("AUTH_COOKIE_SECURE", raising=False)
    monkeypatch.delenv("AUTH_SESSION_TTL_SECONDS", raising=False)
    monkeypatch.delenv("DB_AUTO_MIGRATE", raising=False)
    load_auth_config.cache_clear()
    yield
    load_auth_config.cache_clear()


class FakeCursor:
    def __init__(self, conn: "FakeConn"):
        self._conn = conn
        self._row: Optional[Tuple[Any, ...]] = None

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc) -> None:  # type: ignore[no-untyped-def]
        return None

    def execute(self, sql: str, params=None):  # type: ignore[no-untyped-def]
        norm = " ".join(sql.split())
        self._conn.executed.append((norm, params))
        self._row = None
        if norm.startswith("SELECT") and "FROM app_user" in norm and "github_id = %s" in norm:
            self._row = self._conn.users_by_github_id.get(params[0])
        elif norm.startswith("SELECT") and "FROM app_user" in norm and "id = %s" in norm:
            for row in self._conn.users_by_github_id.values():
                if row[0] == params[0]:
                    self._row = row
        elif norm.startswith("SELECT") and "FROM user_session" in norm:
            self._row = self._conn.sessions.get(params[0])
        return self

    def fetchone(self):  # type: ignore[no-untyped-def]
        return self._row


class FakeConn:
    """In-memory stand-in for a psycopg connection; records every statement."""

    def __init__(self, users: Optional[List[Tuple[Any, ...]]] = None):
        self.users_by_github_id: Dict[int, Tuple[Any, ...]] = {int(u[1]): u for u in (users or [])}
        self.sessions: Dict[str, Tuple[Any, ...]] = {}
        self.executed: List[Tuple[str, Any]] = []
        self.commits = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def close(self) -> None:
        self.closed = True

    def statements(self, prefix: str) -> List[Tuple[str, Any]]:
        return [(sql, params) for sql, params in self.executed if sql.startswith(prefix)]


@pytest.fixture
def fake_conn_factory():
    return FakeConn
