# src/agora/scripts/tokens.py
"""
Issue a bearer token for a local user.

Authentication proper lives outside this service; this helper creates the
user row on first use and prints a token the API will accept:

    python -m agora.scripts.tokens alice@example.com --name Alice
"""

from __future__ import annotations

import argparse

from sqlalchemy.orm import Session

from agora.core.security import create_access_token
from agora.db.session import SessionLocal, create_tables
from agora.models import User


def ensure_user(db: Session, email: str, name: str | None = None) -> User:
    """Return the user with ``email``, creating it if needed."""
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, name=name)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def main(argv: list[str] | None = None) -> str:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("--name", default=None)
    parser.add_argument("--expires-minutes", type=int, default=None)
    args = parser.parse_args(argv)

    create_tables()
    db = SessionLocal()
    try:
        user = ensure_user(db, args.email, args.name)
        token = create_access_token(user.id, args.expires_minutes)
    finally:
        db.close()

    print(f"user_id={user.id}")
    print(f"Authorization: Bearer {token}")
    return token


if __name__ == "__main__":
    main()
