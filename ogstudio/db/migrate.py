"""
Forward-only SQL migrations for the auth tables.

Each `migrations/NNNN_name.sql` file is applied once, inside its own transaction, and
recorded with its sha256 so edits to an applied file are caught on the next run.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import psycopg

from ogstudio.db import DbConfig, load_db_config

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Advisory lock key shared by every process that migrates this database.
MIGRATION_LOCK_KEY = 470913562218


@dataclass(frozen=True)
class Migration:
    version: str
    checksum: str
    sql: str


def load_migrations(directory: Path = MIGRATIONS_DIR) -> List[Migration]:
    if not directory.exists():
        return []
    out: List[Migration] = []
    for p in sorted(x for x in directory.iterdir() if x.is_file() and x.suffix == ".sql"):
        raw = p.read_bytes()
        out.append(Migration(version=p.stem, checksum=hashlib.sha256(raw).hexdigest(), sql=raw.decode("utf-8")))
    return out


def pending_migrations(applied: dict, migrations: Iterable[Migration]) -> List[Migration]:
    """Migrations not yet recorded; raises if an applied file was edited."""
    out: List[Migration] = []
    for m in migrations:
        prev = applied.get(m.version)
        if prev is None:
            out.append(m)
        elif prev != m.checksum:
            raise RuntimeError(f"Migration checksum mismatch for {m.version}: db={prev[:12]} file={m.checksum[:12]}")
    return out


def apply_migrations(*, dsn: str, migrations: Optional[Iterable[Migration]] = None) -> Tuple[int, List[str]]:
    """
    Apply pending migrations.

    Returns: (applied_count, applied_versions)
    """
    migs = list(migrations) if migrations is not None else load_migrations()
    applied_versions: List[str] = []

    with psycopg.connect(dsn, autocommit=True) as conn:
        conn.execute("SELECT pg_advisory_lock(%s);", (MIGRATION_LOCK_KEY,))
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                  version text PRIMARY KEY,
                  checksum text NOT NULL,
                  applied_at timestamptz NOT NULL DEFAULT now()
                );
                """)
            rows = conn.execute("SELECT version, checksum FROM schema_migrations;").fetchall()
            applied = {str(r[0]): str(r[1]) for r in rows}

            for m in pending_migrations(applied, migs):
                with conn.transaction():
                    conn.execute(m.sql)
                    conn.execute(
                        "INSERT INTO schema_migrations(version, checksum) VALUES (%s, %s);",
                        (m.version, m.checksum),
                    )
                logger.info("Applied migration %s", m.version)
                applied_versions.append(m.version)
        finally:
            conn.execute("SELECT pg_advisory_unlock(%s);", (MIGRATION_LOCK_KEY,))

    return len(applied_versions), applied_versions


def maybe_auto_migrate(cfg: Optional[DbConfig] = None) -> Tuple[bool, str]:
    """
    Auto-migrate on startup when DB_AUTO_MIGRATE=1 and Postgres is configured.

    Returns: (did_attempt, message)
    """
    cfg = cfg or load_db_config()
    if not cfg.auto_migrate:
        return False, "DB_AUTO_MIGRATE is disabled"
    if not cfg.configured:
        return False, "Postgres DSN not configured"
    try:
        n, versions = apply_migrations(dsn=cfg.dsn)
    except (psycopg.Error, RuntimeError) as e:
        return True, f"Migration failed: {e}"
    if n:
        return True, f"Applied {n} migration(s): {', '.join(versions)}"
    return True, "No pending migrations"
