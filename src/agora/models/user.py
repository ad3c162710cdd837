"""SQLAlchemy models for platform users."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, Enum, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from agora.db.session import Base
from agora.db.time import utcnow


class PlatformRole(StrEnum):
    """Platform-wide role, independent of any community membership."""

    USER = "USER"
    ADMIN = "ADMIN"
    GUEST = "GUEST"


class User(Base):
    """Account referenced by memberships and notifications."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    platform_role: Mapped[PlatformRole] = mapped_column(
        Enum(PlatformRole, name="platform_role"),
        nullable=False,
        default=PlatformRole.USER,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def display_name(self) -> str:
        """Return the name shown next to the user's activity."""
        return self.name or self.email
