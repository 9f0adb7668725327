"""
Postgres access.

Connection settings come from the environment: either `POSTGRES_DSN`, or the
`POSTGRES_HOST`/`POSTGRES_DB`/`POSTGRES_USER`/`POSTGRES_PASSWORD` parts (plus an
optional `POSTGRES_PORT`). Without either, the app runs but every route that needs
the database answers 500.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import psycopg
from psycopg.conninfo import make_conninfo

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432


@dataclass(frozen=True)
class DbConfig:
    dsn: Optional[str]
    auto_migrate: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.dsn)


def _env(name: str) -> Optional[str]:
    return (os.getenv(name) or "").strip() or None


def _dsn_from_env() -> Optional[str]:
    dsn = _env("POSTGRES_DSN")
    if dsn:
        return dsn
    host, db, user, pw = (_env(n) for n in ("POSTGRES_HOST", "POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD"))
    if not (host and db and user and pw):
        return None
    try:
        port = int(_env("POSTGRES_PORT") or DEFAULT_PORT)
    except ValueError:
        logger.warning("Ignoring invalid POSTGRES_PORT; using %d", DEFAULT_PORT)
        port = DEFAULT_PORT
    # make_conninfo quotes passwords with spaces or quotes.
    return make_conninfo(host=host, port=port, dbname=db, user=user, password=pw)


def load_db_config() -> DbConfig:
    auto = (_env("DB_AUTO_MIGRATE") or "").lower() in ("1", "true", "yes", "y", "on")
    return DbConfig(dsn=_dsn_from_env(), auto_migrate=auto)


def get_connection(cfg: Optional[DbConfig] = None) -> Optional[psycopg.Connection]:
    """Get a Postgres connection, or return None if not configured."""
    cfg = cfg or load_db_config()
    if not cfg.configured:
        return None
    return psycopg.connect(cfg.dsn)
