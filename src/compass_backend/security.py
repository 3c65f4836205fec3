from __future__ import annotations

import secrets
from datetime import datetime, timedelta

import bcrypt

from compass_backend.models import utc_now

# bcrypt silently truncates beyond this; refuse instead.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    raw = password.encode("utf-8")
    if len(raw) > _BCRYPT_MAX_BYTES:
        raise ValueError("password too long (bcrypt supports at most 72 bytes)")
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def issue_api_token(ttl_seconds: int) -> tuple[str, datetime]:
    """New opaque bearer token and its expiry."""
    return secrets.token_urlsafe(32), utc_now() + timedelta(seconds=ttl_seconds)
