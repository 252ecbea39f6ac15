"""Conversation session and participation models."""

import uuid
from datetime import datetime, timezone
from typing import List, TYPE_CHECKING

from sqlalchemy import Integer, String, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User
    from .emotion import EmotionalReading


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus:
    CREATED = "CREATED"
    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    RESOLVED = "RESOLVED"
    ABANDONED = "ABANDONED"

    ALL = (CREATED, INVITED, ACTIVE, PAUSED, RESOLVED, ABANDONED)


class Session(Base):
    """A guided conversation between two partners."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    status: Mapped[str] = mapped_column(String, default=SessionStatus.CREATED, index=True)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_now,
        onupdate=_now,
    )
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    vessels: Mapped[List["UserVessel"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
    )


class UserVessel(Base):
    """Per-user participation record within a session."""

    __tablename__ = "user_vessels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    session_id: Mapped[str] = mapped_column(ForeignKey("sessions.id", ondelete="CASCADE"), index=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    user: Mapped["User"] = relationship(back_populates="vessels")
    session: Mapped["Session"] = relationship(back_populates="vessels")
    readings: Mapped[List["EmotionalReading"]] = relationship(
        back_populates="vessel",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_vessel_user_session", "user_id", "session_id", unique=True),
    )
