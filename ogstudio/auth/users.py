from __future__ import annotations

from typing import Optional

import psycopg

from ogstudio.auth.models import User


def _row_to_user(row) -> User:  # type: ignore[no-untyped-def]
    user_id, github_id, name, avatar = row
    return User(id=str(user_id), github_id=int(github_id), name=str(name), avatar=avatar)


def find_user_by_github_id(conn: psycopg.Connection, github_id: int) -> Optional[User]:
    """
    Get the local user linked to a GitHub account id.

    Args:
        conn: PostgreSQL connection
        github_id: Numeric GitHub user id

    Returns:
        User if found, None otherwise
    """
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT id, github_id, name, avatar
            FROM app_user
            WHERE github_id = %s
            """,
            (github_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        return _row_to_user(row)


def insert_user(conn: psycopg.Connection, user: User) -> None:
    """
    Insert a new local user. The caller owns the transaction.

    Raises:
        psycopg.IntegrityError: If the id or GitHub id already exists
    """
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO app_user (id, github_id, name, avatar)
            VALUES (%s, %s, %s, %s)
            """,
            (user.id, user.github_id, user.name, user.avatar),
        )
