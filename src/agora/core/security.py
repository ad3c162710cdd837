"""Access token helpers."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from jose import jwt

from agora.core.settings import settings


def create_access_token(user_id: uuid.UUID, expires_minutes: int | None = None) -> str:
    """Issue a signed bearer token whose subject is ``user_id``."""
    minutes = expires_minutes or settings.access_token_expire_minutes
    expire = datetime.now(UTC) + timedelta(minutes=minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID | None:
    """Return the user id carried by ``token``, or None if it has no subject.

    Raises:
        JWTError: If the token is malformed, expired or wrongly signed.
        ValueError: If the subject is not a UUID.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        return None
    return uuid.UUID(subject)
