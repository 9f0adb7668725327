from __future__ import annotations

import base64
import os
import secrets

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_token(nbytes: int = 32) -> str:
    return b64url(os.urandom(nbytes))


def generate_id(length: int) -> str:
    """Random lowercase alphanumeric id (used for user and session ids)."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))
